import asyncio
import logging
from typing import List, Optional

from taskboard.core.store import Record, Store, utc_now
from taskboard.modules.accounts.schemas import Account, AccountMembership
from taskboard.modules.identity.schemas import AccountSummary, AuthUser, UserInfo
from taskboard.modules.users.schemas import User

logger = logging.getLogger(__name__)


def _email_local_part(email: Optional[str]) -> str:
    if not email:
        return ""
    return email.split("@")[0]


class IdentityResolver:
    """Turns an authenticated user into the (user, membership, account, role) tuple.

    Missing rows are created rather than reported: a first sign-in gets a User
    row, an Account and an admin membership, all keyed so that resolving again
    finds them instead of creating more.
    """

    def __init__(self, store: Store):
        self.store = store

    async def resolve(self, auth_user: AuthUser) -> Optional[UserInfo]:
        user = await self.store.select_first_by_id(User, auth_user.id)
        if user is None:
            user = await self._create_user(auth_user)
        if user is None:
            return None

        membership = await self.store.select_first_matching(
            AccountMembership,
            {"user_id": user["id"]},
            order_by="last_accessed_at",
            descending=True,
        )
        if membership is None:
            membership = await self._create_account_with_membership(auth_user)

        account = None
        if membership is not None:
            account = await self.store.select_first_by_id(Account, membership["account_id"])

        return UserInfo(
            user=User(**user),
            role=membership["role"] if membership else None,
            membership=AccountMembership(**membership) if membership else None,
            account=Account(**account) if account else None,
        )

    async def find_membership(self, user_id: str, account_id: str) -> Optional[Record]:
        return await self.store.select_first_matching(
            AccountMembership,
            {"user_id": user_id, "account_id": account_id},
        )

    async def touch_membership(self, membership_id: str) -> Record:
        """Mark the membership as the most recently accessed one"""
        return await self.store.update(
            AccountMembership,
            membership_id,
            {"last_accessed_at": utc_now()},
        )

    async def switch_account(self, auth_user: AuthUser, account_id: str) -> Optional[UserInfo]:
        """
        Make account_id the user's current account and return the re-resolved
        identity. Returns None without writing anything when the user is not a
        member of the account.
        """
        membership = await self.find_membership(auth_user.id, account_id)
        if membership is None:
            logger.info(f"User {auth_user.id} has no membership in account {account_id}")
            return None
        await self.touch_membership(membership["id"])
        return await self.resolve(auth_user)

    async def list_accounts(self, user_id: str) -> List[AccountSummary]:
        """The user's accounts, most recently accessed first; the first one is current"""
        memberships = await self.store.select_matching(
            AccountMembership,
            {"user_id": user_id},
            order_by="last_accessed_at",
            descending=True,
        )
        accounts = await asyncio.gather(*[
            self.store.select_first_by_id(Account, m["account_id"]) for m in memberships
        ])
        summaries = []
        for index, (membership, account) in enumerate(zip(memberships, accounts)):
            if account is None:
                continue
            summaries.append(AccountSummary(
                account=Account(**account),
                membership=AccountMembership(**membership),
                current=index == 0,
            ))
        return summaries

    async def _create_user(self, auth_user: AuthUser) -> Optional[Record]:
        if not auth_user.email:
            logger.warning(f"Auth user {auth_user.id} has no email; cannot create user row")
            return None
        metadata = auth_user.user_metadata or {}
        now = utc_now()
        logger.info(f"Creating user row for {auth_user.id}")
        return await self.store.upsert(User, {
            "id": auth_user.id,
            "name": metadata.get("name") or metadata.get("full_name") or _email_local_part(auth_user.email) or "New User",
            "email": auth_user.email,
            "created_at": now,
            "updated_at": now,
        })

    async def _create_account_with_membership(self, auth_user: AuthUser) -> Optional[Record]:
        if not auth_user.email:
            return None
        metadata = auth_user.user_metadata or {}
        now = utc_now()
        # The default account shares the user's id so a retried first login reuses it
        account = await self.store.upsert(Account, {
            "id": auth_user.id,
            "name": metadata.get("accountName") or _email_local_part(auth_user.email) or "New Account",
            "created_at": now,
            "updated_at": now,
        })
        logger.info(f"Created default account {account['id']} for user {auth_user.id}")
        return await self.store.insert(AccountMembership, {
            "account_id": account["id"],
            "user_id": auth_user.id,
            "role": "admin",
            "created_at": now,
            "last_accessed_at": now,
        })
