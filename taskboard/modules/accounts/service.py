import asyncio
import logging
from typing import List

from fastapi import HTTPException

from taskboard.config.roles import sanitize_role
from taskboard.core.errors import NotFoundError
from taskboard.core.file_store import FileStore, build_account_logo_path
from taskboard.core.store import Store, utc_now
from taskboard.modules.accounts.schemas import (
    Account, AccountMembership, AccountResponse, AccountUpdate, MemberResponse
)
from taskboard.modules.users.schemas import User

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, store: Store, file_store: FileStore):
        self.store = store
        self.file_store = file_store

    async def _to_response(self, row: dict) -> AccountResponse:
        return AccountResponse(
            **row,
            logo_image_url=await self.file_store.get_url(row.get("logo_image_path")),
        )

    async def get_account(self, account_id: str) -> AccountResponse:
        row = await self.store.select_first_by_id(Account, account_id)
        if row is None:
            raise NotFoundError("Account not found")
        return await self._to_response(row)

    async def update_account(self, account_id: str, account_data: AccountUpdate) -> AccountResponse:
        """Update account"""
        row = await self.store.select_first_by_id(Account, account_id)
        if row is None:
            raise NotFoundError("Account not found")

        update_data = {"updated_at": utc_now()}
        if account_data.name is not None and account_data.name.strip():
            update_data["name"] = account_data.name.strip()
        if account_data.logo_image_path is not None:
            update_data["logo_image_path"] = account_data.logo_image_path or None
        if account_data.hero_image_path is not None:
            update_data["hero_image_path"] = account_data.hero_image_path or None

        updated = await self.store.update(Account, account_id, update_data, previous=row)
        return await self._to_response(updated)

    async def upload_logo(self, account_id: str, filename: str, content: bytes, content_type: str) -> AccountResponse:
        """Upload a logo image and point the account at it"""
        path = build_account_logo_path(account_id, filename)
        await self.file_store.upload(path, content, content_type=content_type, overwrite=True)
        return await self.update_account(account_id, AccountUpdate(logo_image_path=path))

    async def list_members(self, account_id: str) -> List[MemberResponse]:
        """List all members of an account"""
        memberships = await self.store.select_matching(
            AccountMembership,
            {"account_id": account_id},
            order_by="created_at",
        )
        users = await asyncio.gather(*[
            self.store.select_first_by_id(User, m["user_id"]) for m in memberships
        ])
        members = []
        for membership, user in zip(memberships, users):
            if user is None:
                continue
            members.append(MemberResponse(
                user_id=user["id"],
                membership_id=membership["id"],
                name=user.get("name") or "Member",
                email=user.get("email") or "",
                role=sanitize_role(membership.get("role")),
                profile_image_path=user.get("profile_image_path"),
                last_accessed_at=membership["last_accessed_at"],
            ))
        return members

    async def change_member_role(self, account_id: str, acting_user_id: str, user_id: str, role: str) -> MemberResponse:
        """Change another member's role in the account"""
        if acting_user_id == user_id:
            raise HTTPException(status_code=400, detail="You cannot change your own role")

        membership = await self.store.select_first_matching(
            AccountMembership,
            {"account_id": account_id, "user_id": user_id},
        )
        if membership is None:
            raise NotFoundError("Member not found")

        role = sanitize_role(role)
        if sanitize_role(membership.get("role")) != role:
            membership = await self.store.update(AccountMembership, membership["id"], {"role": role}, previous=membership)
            logger.info(f"User {acting_user_id} set role of {user_id} in account {account_id} to {role}")

        user = await self.store.select_first_by_id(User, user_id) or {}
        return MemberResponse(
            user_id=user_id,
            membership_id=membership["id"],
            name=user.get("name") or "Member",
            email=user.get("email") or "",
            role=role,
            profile_image_path=user.get("profile_image_path"),
            last_accessed_at=membership["last_accessed_at"],
        )
