from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from taskboard.core.context import AppContext, get_context
from taskboard.core.dependencies import get_account_info, get_user_info
from taskboard.modules.identity.schemas import UserInfo
from taskboard.modules.users.schemas import ImageUploadResponse, UserResponse, UserUpdate
from taskboard.modules.users.service import IMAGE_KINDS, UserService

router = APIRouter(prefix="/users", tags=["users"])

MAX_IMAGE_BYTES = 5 * 1024 * 1024


def get_user_service(context: AppContext = Depends(get_context)) -> UserService:
    return UserService(context.store, context.file_store)


@router.put("/me", response_model=UserResponse)
async def update_my_profile(
    user_data: UserUpdate,
    info: UserInfo = Depends(get_user_info),
    service: UserService = Depends(get_user_service)
):
    """Update the signed-in user's profile"""
    return await service.update_profile(info.user.id, user_data)


@router.post("/me/images/{kind}", response_model=ImageUploadResponse)
async def upload_my_image(
    kind: str,
    file: UploadFile = File(...),
    info: UserInfo = Depends(get_account_info),
    service: UserService = Depends(get_user_service)
):
    """Upload a profile or hero image; save the returned path with PUT /users/me"""
    if kind not in IMAGE_KINDS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown image kind: {kind}")
    if file.content_type and not file.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image files are accepted")
    content = await file.read()
    if len(content) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=413, detail="Image is too large")
    return await service.upload_image(
        info.account.id, info.user.id, kind, file.filename, content,
        file.content_type or "application/octet-stream"
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    info: UserInfo = Depends(get_user_info),
    service: UserService = Depends(get_user_service)
):
    """Get user by ID (only if same user or shares an account)"""
    if not await service.shares_account(info.user.id, user_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User not accessible")
    return await service.get_user_by_id(user_id)
