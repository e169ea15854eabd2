from fastapi import APIRouter, Depends
from typing import List

from taskboard.core.context import AppContext, get_context
from taskboard.core.dependencies import get_current_auth_user, get_user_info, require_permission
from taskboard.modules.identity.schemas import AuthUser, UserInfo
from taskboard.modules.invites.schemas import (
    AcceptResult, AccountInvite, InviteCreate, InvitePreview, InviteResponse
)
from taskboard.modules.invites.service import InviteService

router = APIRouter(prefix="/invites", tags=["invites"])


def get_invite_service(context: AppContext = Depends(get_context)) -> InviteService:
    return InviteService(context.store)


def _with_url(invite: AccountInvite, context: AppContext) -> InviteResponse:
    return InviteResponse(**invite.model_dump(), url=context.settings.invite_url(invite.code))


@router.post("", response_model=InviteResponse, status_code=201)
async def create_invite(
    invite_data: InviteCreate,
    info: UserInfo = Depends(require_permission("invites:create")),
    service: InviteService = Depends(get_invite_service),
    context: AppContext = Depends(get_context)
):
    """Create an invite link for the current account"""
    invite = await service.create_invite(info.account.id, info.user.id, invite_data)
    return _with_url(invite, context)


@router.get("", response_model=List[InviteResponse])
async def list_invites(
    limit: int = 100,
    offset: int = 0,
    info: UserInfo = Depends(require_permission("invites:read")),
    service: InviteService = Depends(get_invite_service),
    context: AppContext = Depends(get_context)
):
    """List the current account's invites, newest first"""
    invites = await service.list_invites(info.account.id, limit=limit, offset=offset)
    return [_with_url(invite, context) for invite in invites]


@router.get("/{code}", response_model=InvitePreview)
async def preview_invite(
    code: str,
    service: InviteService = Depends(get_invite_service)
):
    """Public details of an invite for its accept page"""
    return await service.preview(code)


@router.post("/{code}/accept", response_model=AcceptResult)
async def accept_invite(
    code: str,
    info: UserInfo = Depends(get_user_info),
    auth_user: AuthUser = Depends(get_current_auth_user),
    service: InviteService = Depends(get_invite_service),
    context: AppContext = Depends(get_context)
):
    """Join the invite's account and make it the current account"""
    result = await service.accept_invite(code, info.user)
    await context.resolver.switch_account(auth_user, result.invite.account_id)
    return result


@router.post("/{invite_id}/revoke", response_model=InviteResponse)
async def revoke_invite(
    invite_id: str,
    info: UserInfo = Depends(require_permission("invites:revoke")),
    service: InviteService = Depends(get_invite_service),
    context: AppContext = Depends(get_context)
):
    """Revoke an invite of the current account"""
    invite = await service.revoke_invite(invite_id, info.account.id)
    return _with_url(invite, context)
