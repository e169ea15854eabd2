from fastapi import APIRouter, Depends
from taskboard.config.roles import get_permission_matrix, get_role_permissions
from taskboard.core.dependencies import get_auth_service, get_current_token, get_user_info
from taskboard.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse
)
from taskboard.modules.auth.service import AuthService
from taskboard.modules.identity.schemas import UserInfo

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/permissions")
async def get_permissions(info: UserInfo = Depends(get_user_info)):
    """Permissions of the current user's role in the current account (for frontend UI)."""
    return {
        "role": info.role,
        "permissions": get_role_permissions(info.role) if info.role else [],
        "matrix": get_permission_matrix(),
    }
