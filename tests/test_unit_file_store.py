"""Tests for Supabase Storage uploads and URL resolution."""

import pytest

from taskboard.core.errors import FileUploadError
from taskboard.core.file_store import (
    FileStore, build_account_logo_path, build_user_image_path, get_file_ext
)
from tests.fakes import FakeSupabaseClient


@pytest.fixture()
def fake():
    return FakeSupabaseClient()


class TestPaths:
    def test_extension_from_filename(self):
        assert get_file_ext("photo.PNG", "image/jpeg") == "png"

    def test_extension_from_content_type(self):
        assert get_file_ext("photo", "image/webp") == "webp"

    def test_extension_default(self):
        assert get_file_ext(None, "application/octet-stream") == "jpg"

    def test_user_image_path(self):
        path = build_user_image_path("acc", "usr", "profile", "me.png")
        assert path.startswith("acc/users/usr/profile-")
        assert path.endswith(".png")

    def test_account_logo_path(self):
        path = build_account_logo_path("acc", "logo.svg")
        assert path.startswith("acc/logo/")
        assert path.endswith("-logo.svg")


class TestFileStore:
    async def test_upload(self, fake):
        files = FileStore(fake, bucket="accounts")

        path = await files.upload("acc/logo/1-logo.png", b"data", content_type="image/png")

        assert path == "acc/logo/1-logo.png"
        content, options = fake.storage.files[("accounts", path)]
        assert content == b"data"
        assert options["content-type"] == "image/png"
        assert options["upsert"] == "true"

    async def test_upload_failure(self, fake):
        fake.storage.fail_uploads = True
        files = FileStore(fake)

        with pytest.raises(FileUploadError) as exc_info:
            await files.upload("acc/x.png", b"data")
        assert exc_info.value.status_code == 502

    async def test_urls_are_cached(self, fake):
        files = FileStore(fake, bucket="accounts")
        assert files.get_cached_url("acc/x.png") is None

        first = await files.get_url("acc/x.png")
        second = await files.get_url("acc/x.png")

        assert first == second == "https://storage.test/accounts/acc/x.png"
        assert fake.storage.url_calls == 1
        assert files.get_cached_url("acc/x.png") == first

    async def test_empty_path_has_no_url(self, fake):
        assert await FileStore(fake).get_url(None) is None
