from fastapi import APIRouter, Depends, HTTPException
from typing import List

from taskboard.core.context import AppContext, get_context
from taskboard.core.dependencies import get_current_auth_user, get_user_info
from taskboard.modules.identity.schemas import AccountSummary, AuthUser, SwitchAccountRequest, UserInfo

router = APIRouter(prefix="/me", tags=["identity"])


@router.get("", response_model=UserInfo)
async def get_me(info: UserInfo = Depends(get_user_info)):
    """The signed-in user with their current account, membership and role"""
    return info


@router.get("/accounts", response_model=List[AccountSummary])
async def list_my_accounts(
    info: UserInfo = Depends(get_user_info),
    context: AppContext = Depends(get_context)
):
    """Every account the user belongs to, current account first"""
    return await context.resolver.list_accounts(info.user.id)


@router.post("/switch-account", response_model=UserInfo)
async def switch_account(
    request: SwitchAccountRequest,
    auth_user: AuthUser = Depends(get_current_auth_user),
    context: AppContext = Depends(get_context)
):
    """Make another of the user's accounts the current one"""
    info = await context.resolver.switch_account(auth_user, request.account_id)
    if info is None:
        raise HTTPException(status_code=404, detail="You are not a member of that account")
    return info
