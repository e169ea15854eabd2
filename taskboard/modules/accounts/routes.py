from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from typing import List

from taskboard.core.context import AppContext, get_context
from taskboard.core.dependencies import require_permission
from taskboard.modules.accounts.schemas import (
    AccountResponse, AccountUpdate, MemberResponse, MemberRoleUpdate
)
from taskboard.modules.accounts.service import AccountService
from taskboard.modules.identity.schemas import UserInfo

router = APIRouter(prefix="/accounts", tags=["accounts"])

MAX_LOGO_BYTES = 5 * 1024 * 1024


def get_account_service(context: AppContext = Depends(get_context)) -> AccountService:
    return AccountService(context.store, context.file_store)


@router.get("/current", response_model=AccountResponse)
async def get_current_account(
    info: UserInfo = Depends(require_permission("accounts:read")),
    service: AccountService = Depends(get_account_service)
):
    """Get the user's current account"""
    return await service.get_account(info.account.id)


@router.put("/current", response_model=AccountResponse)
async def update_current_account(
    account_data: AccountUpdate,
    info: UserInfo = Depends(require_permission("accounts:update")),
    service: AccountService = Depends(get_account_service)
):
    """Update the current account (admin only)"""
    return await service.update_account(info.account.id, account_data)


@router.post("/current/logo", response_model=AccountResponse)
async def upload_account_logo(
    file: UploadFile = File(...),
    info: UserInfo = Depends(require_permission("accounts:update")),
    service: AccountService = Depends(get_account_service)
):
    """Upload a new logo image for the current account (admin only)"""
    if file.content_type and not file.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image files are accepted")
    content = await file.read()
    if len(content) > MAX_LOGO_BYTES:
        raise HTTPException(status_code=413, detail="Logo image is too large")
    return await service.upload_logo(
        info.account.id, file.filename, content, file.content_type or "application/octet-stream"
    )


@router.get("/current/members", response_model=List[MemberResponse])
async def list_members(
    info: UserInfo = Depends(require_permission("members:read")),
    service: AccountService = Depends(get_account_service)
):
    """List all members of the current account"""
    return await service.list_members(info.account.id)


@router.put("/current/members/{user_id}/role", response_model=MemberResponse)
async def change_member_role(
    user_id: str,
    role_update: MemberRoleUpdate,
    info: UserInfo = Depends(require_permission("members:update_role")),
    service: AccountService = Depends(get_account_service)
):
    """Change a member's role in the current account (admin only, not your own)"""
    return await service.change_member_role(info.account.id, info.user.id, user_id, role_update.role)
