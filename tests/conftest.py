"""Shared fixtures for taskboard tests.

Everything runs against the in-memory Supabase fake in tests/fakes.py; no
Supabase project is required.
"""

import asyncio
import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure settings can be loaded without .env
os.environ.setdefault("SUPABASE_URL", "http://supabase.test")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

from taskboard.config import Settings  # noqa: E402
from taskboard.core.context import create_context  # noqa: E402
from taskboard.modules.auth.service import clear_auth_cache  # noqa: E402
from tests.fakes import FakeSupabaseClient  # noqa: E402


# ---------------------------------------------------------------------------
# Fake Supabase + application context
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_auth_cache():
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture()
def supabase():
    return FakeSupabaseClient()


@pytest.fixture()
def test_settings(tmp_path):
    return Settings(
        supabase_url="http://supabase.test",
        supabase_key="test-anon-key",
        local_store_path=str(tmp_path / "local_store.db"),
        auth_debounce_ms=5,
        invite_base_url="https://app.test/accept-account-invite",
    )


@pytest.fixture()
def context(test_settings, supabase):
    ctx = create_context(test_settings, supabase)
    yield ctx
    ctx.close()


@pytest.fixture()
def store(context):
    return context.store


# ---------------------------------------------------------------------------
# HTTP test client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def client(context):
    from taskboard.main import app

    app.state.context = context
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.state.context = None


# ---------------------------------------------------------------------------
# Convenience: signed-in users
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_user(supabase):
    """Factory registering a provider user.

    Returns a dict with keys: token, headers, id, email
    """
    def _make_user(email="owner@example.com", **metadata):
        token, user = supabase.auth.add_user(email, metadata)
        return {
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
            "id": user.id,
            "email": email,
            "provider_user": user,
        }
    return _make_user


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01):
    """Poll predicate() until it is truthy or fail after timeout seconds"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)
