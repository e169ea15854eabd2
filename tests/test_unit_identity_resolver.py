"""Tests for turning an authenticated user into a (user, membership, account) tuple."""

import pytest

from taskboard.modules.identity.resolver import IdentityResolver
from taskboard.modules.identity.schemas import AuthUser


@pytest.fixture()
def resolver(store):
    return IdentityResolver(store)


def _auth_user(id="user-1", email="ada@example.com", **metadata):
    return AuthUser(id=id, email=email, user_metadata=metadata)


class TestResolve:
    async def test_first_resolution_creates_user_account_and_admin_membership(self, resolver, supabase):
        info = await resolver.resolve(_auth_user(name="Ada", accountName="Engines"))

        assert info.user.id == "user-1"
        assert info.user.name == "Ada"
        assert info.account.id == "user-1"
        assert info.account.name == "Engines"
        assert info.role == "admin"
        assert len(supabase.db.rows("user")) == 1
        assert len(supabase.db.rows("account")) == 1
        assert len(supabase.db.rows("account_membership")) == 1

    async def test_resolving_again_creates_nothing(self, resolver, supabase):
        first = await resolver.resolve(_auth_user())
        second = await resolver.resolve(_auth_user())

        assert second.membership.id == first.membership.id
        assert len(supabase.db.rows("user")) == 1
        assert len(supabase.db.rows("account")) == 1
        assert len(supabase.db.rows("account_membership")) == 1

    async def test_names_fall_back_to_email(self, resolver):
        info = await resolver.resolve(_auth_user(email="grace@example.com"))

        assert info.user.name == "grace"
        assert info.account.name == "grace"

    async def test_full_name_metadata(self, resolver):
        info = await resolver.resolve(_auth_user(full_name="Grace Hopper"))
        assert info.user.name == "Grace Hopper"

    async def test_no_email_and_no_user_row(self, resolver, supabase):
        assert await resolver.resolve(_auth_user(email=None)) is None
        assert supabase.db.rows("user") == []

    async def test_existing_user_row_without_email(self, resolver, supabase):
        supabase.db.seed("user", {"id": "user-1", "name": "Ada", "email": "ada@example.com"})
        supabase.db.seed("account", {"id": "acc-1", "name": "Acme"})
        supabase.db.seed("account_membership", {
            "user_id": "user-1", "account_id": "acc-1", "role": "manager",
            "last_accessed_at": "2026-01-01T00:00:00+00:00",
        })

        info = await resolver.resolve(_auth_user(email=None))

        assert info.account.id == "acc-1"
        assert info.role == "manager"

    async def test_most_recently_accessed_membership_wins(self, resolver, supabase):
        supabase.db.seed("user", {"id": "user-1", "name": "Ada", "email": "ada@example.com"})
        for account_id, accessed in (("acc-1", "2026-01-01"), ("acc-2", "2026-03-01"), ("acc-3", "2026-02-01")):
            supabase.db.seed("account", {"id": account_id, "name": account_id})
            supabase.db.seed("account_membership", {
                "user_id": "user-1", "account_id": account_id, "role": "default",
                "last_accessed_at": f"{accessed}T00:00:00+00:00",
            })

        info = await resolver.resolve(_auth_user())

        assert info.account.id == "acc-2"


class TestSwitchAccount:
    async def _two_accounts(self, resolver, supabase):
        info = await resolver.resolve(_auth_user())
        supabase.db.seed("account", {"id": "acc-2", "name": "Second"})
        supabase.db.seed("account_membership", {
            "user_id": "user-1", "account_id": "acc-2", "role": "guest",
            "last_accessed_at": "2000-01-01T00:00:00+00:00",
        })
        return info

    async def test_switch_to_member_account(self, resolver, supabase):
        await self._two_accounts(resolver, supabase)

        info = await resolver.switch_account(_auth_user(), "acc-2")

        assert info.account.id == "acc-2"
        assert info.role == "guest"

    async def test_switch_to_non_member_account_writes_nothing(self, resolver, supabase):
        await self._two_accounts(resolver, supabase)
        supabase.db.executed.clear()

        assert await resolver.switch_account(_auth_user(), "acc-unknown") is None
        assert all(op == "select" for _, op in supabase.db.executed)

    async def test_list_accounts_current_first(self, resolver, supabase):
        await self._two_accounts(resolver, supabase)

        summaries = await resolver.list_accounts("user-1")

        assert [s.account.id for s in summaries] == ["user-1", "acc-2"]
        assert [s.current for s in summaries] == [True, False]
