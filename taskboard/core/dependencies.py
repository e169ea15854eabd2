"""
Core dependencies for route protection and permission checking
"""

import logging
from typing import Callable

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from taskboard.config.roles import get_role_permissions
from taskboard.core.context import AppContext, get_context
from taskboard.modules.auth.service import AuthService
from taskboard.modules.identity.schemas import AuthUser, UserInfo

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(context: AppContext = Depends(get_context)) -> AuthService:
    return AuthService(context.client)


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


def get_current_auth_user(
    token: str = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> AuthUser:
    """Identity provider user for the bearer token"""
    return auth_service.get_current_user(token)


async def get_user_info(
    auth_user: AuthUser = Depends(get_current_auth_user),
    context: AppContext = Depends(get_context)
) -> UserInfo:
    """Resolve the signed-in user's (user, membership, account) tuple, creating defaults on first use"""
    info = await context.resolver.resolve(auth_user)
    if info is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No user profile could be created for this sign-in"
        )
    return info


async def get_account_info(info: UserInfo = Depends(get_user_info)) -> UserInfo:
    """Like get_user_info, but the user must have a current account"""
    if info.account is None or info.membership is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of any account"
        )
    return info


def has_permission(info: UserInfo, permission: str) -> bool:
    return permission in get_role_permissions(info.role)


def require_permission(required_permission: str) -> Callable:
    """Factory function to create permission check dependency"""
    async def check_permission(info: UserInfo = Depends(get_account_info)) -> UserInfo:
        """Dependency to check the user's role in the current account grants the permission"""
        if not has_permission(info, required_permission):
            logger.info(f"User {info.user.id} with role {info.role} denied {required_permission}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {required_permission}"
            )
        return info
    return check_permission
