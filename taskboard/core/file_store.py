import asyncio
import logging
import time
from typing import Dict, Optional

from supabase import Client

from taskboard.core.errors import FileUploadError

logger = logging.getLogger(__name__)


def get_file_ext(filename: Optional[str], content_type: Optional[str] = None) -> str:
    """Extension from the filename, else from an image/* content type, else jpg"""
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
        if ext:
            return ext
    if content_type and content_type.startswith("image/"):
        return content_type[len("image/"):]
    return "jpg"


def build_user_image_path(account_id: str, user_id: str, kind: str, filename: Optional[str],
                          content_type: Optional[str] = None) -> str:
    ms = int(time.time() * 1000)
    return f"{account_id}/users/{user_id}/{kind}-{ms}.{get_file_ext(filename, content_type)}"


def build_account_logo_path(account_id: str, filename: Optional[str]) -> str:
    ms = int(time.time() * 1000)
    return f"{account_id}/logo/{ms}-{filename or 'logo'}"


class FileStore:
    """Supabase Storage wrapper for account and user images"""

    def __init__(self, client: Client, bucket: str = "accounts"):
        self.client = client
        self.bucket = bucket
        self._urls: Dict[str, str] = {}

    async def upload(self, path: str, content: bytes, content_type: str = "application/octet-stream",
                     overwrite: bool = True, cache_control: str = "3600") -> str:
        """Upload content to the bucket and return its storage path"""
        file_options = {
            "content-type": content_type,
            "cache-control": cache_control,
            "upsert": "true" if overwrite else "false",
        }
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                lambda: self.client.storage.from_(self.bucket).upload(path, content, file_options),
            )
        except Exception as e:
            logger.error(f"Failed to upload file to storage: {str(e)}")
            raise FileUploadError(path, str(e))
        # A re-uploaded path keeps its public URL, so any cached URL stays valid
        return path

    async def get_url(self, path: Optional[str]) -> Optional[str]:
        """
        Gets the full URL for a storage path. The result is cached and later
        calls for the same path return immediately.
        """
        if not path:
            return None
        cached = self._urls.get(path)
        if cached:
            return cached
        # TODO: create signed URLs once the accounts bucket is made private
        url = self.client.storage.from_(self.bucket).get_public_url(path)
        self._urls[path] = url
        return url

    def get_cached_url(self, path: str) -> Optional[str]:
        """Returns the cached URL for the path, or None if it has not been resolved yet"""
        return self._urls.get(path)
