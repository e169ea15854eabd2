import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from taskboard.config.roles import max_role, sanitize_role
from taskboard.core.errors import InviteConflictError, InviteUnavailableError, NotFoundError
from taskboard.core.store import Record, Store, utc_now
from taskboard.modules.accounts.schemas import Account, AccountMembership
from taskboard.modules.invites.schemas import AcceptResult, AccountInvite, InviteCreate, InvitePreview
from taskboard.modules.users.schemas import User

logger = logging.getLogger(__name__)


def _is_expired(invite: AccountInvite, now: Optional[datetime] = None) -> bool:
    if invite.expires_at is None:
        return False
    expires_at = invite.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return (now or datetime.now(timezone.utc)) > expires_at


class InviteService:
    def __init__(self, store: Store):
        self.store = store

    async def create_invite(self, account_id: str, invited_by_user_id: str, invite_data: InviteCreate) -> AccountInvite:
        """Create a shareable invite code for an account"""
        row = await self.store.insert(AccountInvite, {
            "account_id": account_id,
            "invited_by_user_id": invited_by_user_id,
            "code": str(uuid.uuid4()),
            "role": sanitize_role(invite_data.role),
            "email": invite_data.email,
            "expires_at": invite_data.expires_at.isoformat() if invite_data.expires_at else None,
            "created_at": utc_now(),
        })
        logger.info(f"Created invite {row['id']} for account {account_id} with role {row['role']}")
        return AccountInvite(**row)

    async def get_by_code(self, code: str) -> AccountInvite:
        row = await self.store.select_first_matching(AccountInvite, {"code": code})
        if row is None:
            raise NotFoundError("Invite not found")
        return AccountInvite(**row)

    async def list_invites(self, account_id: str, limit: int = 100, offset: int = 0) -> List[AccountInvite]:
        rows = await self.store.select_matching(
            AccountInvite,
            {"account_id": account_id},
            limit=limit,
            offset=offset,
            order_by="created_at",
            descending=True,
        )
        return [AccountInvite(**row) for row in rows]

    async def revoke_invite(self, invite_id: str, account_id: str) -> AccountInvite:
        row = await self.store.select_first_by_id(AccountInvite, invite_id)
        if row is None or row["account_id"] != account_id:
            raise NotFoundError("Invite not found")
        if row.get("revoked_at"):
            return AccountInvite(**row)
        updated = await self.store.update(AccountInvite, invite_id, {"revoked_at": utc_now()}, previous=row)
        logger.info(f"Revoked invite {invite_id}")
        return AccountInvite(**updated)

    async def preview(self, code: str) -> InvitePreview:
        """Invite details for the accept page, safe to show before sign-in"""
        invite = await self.get_by_code(code)
        account = await self.store.select_first_by_id(Account, invite.account_id)
        inviter = None
        if invite.invited_by_user_id:
            inviter = await self.store.select_first_by_id(User, invite.invited_by_user_id)
        return InvitePreview(
            code=invite.code,
            role=sanitize_role(invite.role),
            account_name=account["name"] if account else None,
            invited_by_name=inviter["name"] if inviter else None,
            expires_at=invite.expires_at,
            expired=_is_expired(invite),
            revoked=invite.revoked_at is not None,
            accepted=invite.accepted_at is not None,
        )

    async def accept_invite(self, code: str, user: User) -> AcceptResult:
        """
        Accept an invite for the given user.

        A user without a membership in the account gets one with the invite's
        role. An existing membership keeps the higher of its role and the
        invited role. Accepting again as the same user changes nothing; an
        invite already accepted by someone else is a conflict.
        """
        invite_row = await self.store.select_first_matching(AccountInvite, {"code": code})
        if invite_row is None:
            raise NotFoundError("Invite not found")
        invite = AccountInvite(**invite_row)

        if invite.revoked_at is not None:
            raise InviteUnavailableError("This invite has been revoked.")
        if _is_expired(invite):
            raise InviteUnavailableError("This invite has expired.")
        if invite.email and (user.email or "").lower() != invite.email.lower():
            raise InviteUnavailableError("This invite was issued for a different email address.")

        if invite.accepted_by_user_id and invite.accepted_by_user_id != user.id:
            raise InviteConflictError("Invite was already used by another user.")

        membership = await self.store.select_first_matching(
            AccountMembership,
            {"user_id": user.id, "account_id": invite.account_id},
        )

        if invite.accepted_by_user_id == user.id and membership is not None:
            return AcceptResult(
                invite=invite,
                membership=AccountMembership(**membership),
                already_accepted=True,
            )

        membership = await self._grant_membership(invite, user, membership)

        if invite.accepted_by_user_id is None:
            invite_row = await self.store.update(AccountInvite, invite.id, {
                "accepted_at": utc_now(),
                "accepted_by_user_id": user.id,
            }, previous=invite_row)
            invite = AccountInvite(**invite_row)
            logger.info(f"Invite {invite.id} accepted by user {user.id}")

        return AcceptResult(invite=invite, membership=AccountMembership(**membership))

    async def _grant_membership(self, invite: AccountInvite, user: User, membership: Optional[Record]) -> Record:
        now = utc_now()
        invited_role = sanitize_role(invite.role)
        if membership is None:
            return await self.store.insert(AccountMembership, {
                "user_id": user.id,
                "account_id": invite.account_id,
                "role": invited_role,
                "created_at": now,
                "last_accessed_at": now,
            })

        current_role = sanitize_role(membership.get("role"))
        new_role = max_role(current_role, invited_role)
        fields = {"last_accessed_at": now}
        if new_role != current_role:
            fields["role"] = new_role
            logger.info(f"Upgrading user {user.id} in account {invite.account_id} from {current_role} to {new_role}")
        return await self.store.update(AccountMembership, membership["id"], fields, previous=membership)
