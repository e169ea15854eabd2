import logging
from typing import Optional

from taskboard.core.errors import NotFoundError
from taskboard.core.file_store import FileStore, build_user_image_path
from taskboard.core.store import Store, utc_now
from taskboard.modules.accounts.schemas import AccountMembership
from taskboard.modules.users.schemas import ImageUploadResponse, User, UserResponse, UserUpdate

logger = logging.getLogger(__name__)

IMAGE_KINDS = ("profile", "hero")


class UserService:
    def __init__(self, store: Store, file_store: FileStore):
        self.store = store
        self.file_store = file_store

    async def _to_response(self, row: dict) -> UserResponse:
        return UserResponse(
            **row,
            profile_image_url=await self.file_store.get_url(row.get("profile_image_path")),
            hero_image_url=await self.file_store.get_url(row.get("hero_image_path")),
        )

    async def get_user_by_id(self, user_id: str) -> UserResponse:
        """Get user profile by ID"""
        row = await self.store.select_first_by_id(User, user_id)
        if row is None:
            raise NotFoundError("User not found")
        return await self._to_response(row)

    async def shares_account(self, current_user_id: str, target_user_id: str) -> bool:
        """True if target is self or a member of at least one of the current user's accounts"""
        if current_user_id == target_user_id:
            return True
        mine = await self.store.select_matching(AccountMembership, {"user_id": current_user_id})
        theirs = await self.store.select_matching(AccountMembership, {"user_id": target_user_id})
        my_accounts = {m["account_id"] for m in mine}
        return any(m["account_id"] in my_accounts for m in theirs)

    async def update_profile(self, user_id: str, user_data: UserUpdate) -> UserResponse:
        """Update user profile. Image paths set to null are cleared."""
        row = await self.store.select_first_by_id(User, user_id)
        if row is None:
            raise NotFoundError("User not found")
        updated = await self.store.update(User, user_id, {
            "name": user_data.name,
            "profile_image_path": user_data.profile_image_path,
            "hero_image_path": user_data.hero_image_path,
            "updated_at": utc_now(),
        }, previous=row)
        return await self._to_response(updated)

    async def upload_image(self, account_id: str, user_id: str, kind: str, filename: Optional[str],
                           content: bytes, content_type: str) -> ImageUploadResponse:
        """Upload a profile or hero image; the caller saves the returned path with update_profile"""
        if kind not in IMAGE_KINDS:
            raise ValueError(f"Unknown image kind: {kind}")
        path = build_user_image_path(account_id, user_id, kind, filename, content_type)
        await self.file_store.upload(path, content, content_type=content_type, overwrite=True)
        logger.info(f"Uploaded {kind} image for user {user_id}")
        return ImageUploadResponse(path=path, url=await self.file_store.get_url(path))
