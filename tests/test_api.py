"""Integration tests for the /api/v1 HTTP surface."""

import pytest

from taskboard.core.errors import StoreWriteError


@pytest.fixture()
def owner(make_user):
    return make_user("owner@example.com", name="Olivia", accountName="Acme")


@pytest.fixture()
def invitee(make_user):
    return make_user("invitee@example.com", name="Ian")


async def _join(client, owner, user, role):
    """owner invites user with role; user accepts. Returns the accept response JSON."""
    resp = await client.post("/api/v1/invites", headers=owner["headers"], json={"role": role})
    assert resp.status_code == 201, resp.text
    code = resp.json()["code"]
    await client.get("/api/v1/me", headers=user["headers"])
    resp = await client.post(f"/api/v1/invites/{code}/accept", headers=user["headers"])
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}
        assert resp.headers["X-Frame-Options"] == "DENY"

    async def test_ready(self, client):
        resp = await client.get("/ready")
        assert resp.status_code == 200


class TestAuth:
    async def test_register_and_login(self, client):
        resp = await client.post("/api/v1/auth/register", json={
            "email": "new@example.com",
            "password": "secret-password",
            "name": "New",
            "account_name": "New Co",
        })
        assert resp.status_code == 201, resp.text

        resp = await client.post("/api/v1/auth/login", json={
            "email": "new@example.com",
            "password": "secret-password",
        })
        assert resp.status_code == 200, resp.text
        token = resp.json()["access_token"]

        resp = await client.get("/api/v1/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["account"]["name"] == "New Co"

    async def test_register_twice(self, client):
        body = {"email": "dup@example.com", "password": "secret-password"}
        assert (await client.post("/api/v1/auth/register", json=body)).status_code == 201
        resp = await client.post("/api/v1/auth/register", json=body)
        assert resp.status_code == 400

    async def test_login_wrong_password(self, client, owner):
        resp = await client.post("/api/v1/auth/login", json={
            "email": owner["email"],
            "password": "wrong",
        })
        assert resp.status_code == 401

    async def test_invalid_token(self, client):
        resp = await client.get("/api/v1/me", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    async def test_missing_token(self, client):
        resp = await client.get("/api/v1/me")
        assert resp.status_code in (401, 403)

    async def test_logout(self, client, owner, supabase):
        resp = await client.post("/api/v1/auth/logout", headers=owner["headers"])
        assert resp.status_code == 200
        assert supabase.auth.sign_out_calls == 1

    async def test_permissions(self, client, owner):
        resp = await client.get("/api/v1/auth/permissions", headers=owner["headers"])
        assert resp.status_code == 200
        data = resp.json()
        assert data["role"] == "admin"
        assert "members:update_role" in data["permissions"]


class TestIdentity:
    async def test_first_request_materializes_identity(self, client, owner, supabase):
        resp = await client.get("/api/v1/me", headers=owner["headers"])
        assert resp.status_code == 200
        data = resp.json()
        assert data["user"]["name"] == "Olivia"
        assert data["account"]["id"] == owner["id"]
        assert data["role"] == "admin"

        await client.get("/api/v1/me", headers=owner["headers"])
        assert len(supabase.db.rows("account_membership")) == 1

    async def test_user_without_email(self, client, make_user):
        user = make_user(None)
        resp = await client.get("/api/v1/me", headers=user["headers"])
        assert resp.status_code == 401

    async def test_accounts_and_switch(self, client, owner, invitee):
        await _join(client, owner, invitee, "default")

        resp = await client.get("/api/v1/me/accounts", headers=invitee["headers"])
        assert resp.status_code == 200
        accounts = resp.json()
        assert [a["account"]["id"] for a in accounts] == [owner["id"], invitee["id"]]
        assert accounts[0]["current"]

        resp = await client.post("/api/v1/me/switch-account", headers=invitee["headers"],
                                 json={"account_id": invitee["id"]})
        assert resp.status_code == 200
        assert resp.json()["account"]["id"] == invitee["id"]

        resp = await client.post("/api/v1/me/switch-account", headers=invitee["headers"],
                                 json={"account_id": "not-mine"})
        assert resp.status_code == 404


class TestInvites:
    async def test_create_list_preview(self, client, owner):
        resp = await client.post("/api/v1/invites", headers=owner["headers"], json={"role": "manager"})
        assert resp.status_code == 201
        invite = resp.json()
        assert invite["url"] == f"https://app.test/accept-account-invite/{invite['code']}"

        resp = await client.get("/api/v1/invites", headers=owner["headers"])
        assert [i["id"] for i in resp.json()] == [invite["id"]]

        resp = await client.get(f"/api/v1/invites/{invite['code']}")
        assert resp.status_code == 200
        assert resp.json()["account_name"] == "Acme"

    async def test_accept_switches_to_account(self, client, owner, invitee):
        result = await _join(client, owner, invitee, "manager")
        assert result["membership"]["role"] == "manager"

        resp = await client.get("/api/v1/me", headers=invitee["headers"])
        assert resp.json()["account"]["id"] == owner["id"]
        assert resp.json()["role"] == "manager"

    async def test_accept_by_second_user_conflicts(self, client, owner, invitee, make_user):
        result = await _join(client, owner, invitee, "default")
        other = make_user("other@example.com")
        await client.get("/api/v1/me", headers=other["headers"])

        resp = await client.post(f"/api/v1/invites/{result['invite']['code']}/accept", headers=other["headers"])

        assert resp.status_code == 409

    async def test_revoked_invite_is_gone(self, client, owner, invitee):
        resp = await client.post("/api/v1/invites", headers=owner["headers"], json={})
        invite = resp.json()
        resp = await client.post(f"/api/v1/invites/{invite['id']}/revoke", headers=owner["headers"])
        assert resp.status_code == 200

        resp = await client.post(f"/api/v1/invites/{invite['code']}/accept", headers=invitee["headers"])
        assert resp.status_code == 410

    async def test_unknown_invite(self, client, invitee):
        resp = await client.get("/api/v1/invites/unknown-code")
        assert resp.status_code == 404

    async def test_default_role_cannot_invite(self, client, owner, invitee):
        await _join(client, owner, invitee, "default")
        resp = await client.post("/api/v1/invites", headers=invitee["headers"], json={})
        assert resp.status_code == 403


class TestTasks:
    async def test_crud(self, client, owner):
        resp = await client.post("/api/v1/tasks", headers=owner["headers"], json={"title": "Write docs"})
        assert resp.status_code == 201
        task = resp.json()
        assert task["account_id"] == owner["id"]

        resp = await client.put(f"/api/v1/tasks/{task['id']}", headers=owner["headers"],
                                json={"description_markdown": "## Outline"})
        assert resp.json()["description_markdown"] == "## Outline"

        resp = await client.post(f"/api/v1/tasks/{task['id']}/complete", headers=owner["headers"])
        assert resp.json()["status"] == "completed"

        resp = await client.get("/api/v1/tasks/counts", headers=owner["headers"])
        assert resp.json() == {"active": 0, "completed": 1, "archived": 0}

        resp = await client.get("/api/v1/tasks", headers=owner["headers"], params={"status": "completed"})
        assert [t["id"] for t in resp.json()] == [task["id"]]

        resp = await client.delete(f"/api/v1/tasks/{task['id']}", headers=owner["headers"])
        assert resp.status_code == 204

        resp = await client.get(f"/api/v1/tasks/{task['id']}", headers=owner["headers"])
        assert resp.status_code == 404

    async def test_export(self, client, owner):
        resp = await client.post("/api/v1/tasks", headers=owner["headers"], json={"title": "Release notes"})
        task = resp.json()

        resp = await client.get(f"/api/v1/tasks/{task['id']}/export", headers=owner["headers"])

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/markdown")
        assert 'filename="Release-notes.md"' in resp.headers["content-disposition"]
        assert resp.text.startswith("# Release notes")

    async def test_drafts(self, client, owner):
        task = (await client.post("/api/v1/tasks", headers=owner["headers"], json={})).json()
        url = f"/api/v1/tasks/{task['id']}/draft"

        assert (await client.get(url, headers=owner["headers"])).json() is None
        resp = await client.put(url, headers=owner["headers"], json={"title": "Half"})
        assert resp.status_code == 200
        assert (await client.get(url, headers=owner["headers"])).json()["title"] == "Half"
        assert (await client.delete(url, headers=owner["headers"])).status_code == 204
        assert (await client.get(url, headers=owner["headers"])).json() is None

    async def test_guest_reads_only(self, client, owner, invitee):
        await client.post("/api/v1/tasks", headers=owner["headers"], json={"title": "Shared"})
        await _join(client, owner, invitee, "guest")

        resp = await client.get("/api/v1/tasks", headers=invitee["headers"])
        assert [t["title"] for t in resp.json()] == ["Shared"]

        resp = await client.post("/api/v1/tasks", headers=invitee["headers"], json={"title": "Nope"})
        assert resp.status_code == 403

    async def test_default_role_cannot_delete(self, client, owner, invitee):
        task = (await client.post("/api/v1/tasks", headers=owner["headers"], json={})).json()
        await _join(client, owner, invitee, "default")

        resp = await client.delete(f"/api/v1/tasks/{task['id']}", headers=invitee["headers"])
        assert resp.status_code == 403

    async def test_tasks_are_scoped_to_current_account(self, client, owner, make_user):
        await client.post("/api/v1/tasks", headers=owner["headers"], json={"title": "Private"})
        stranger = make_user("stranger@example.com")

        resp = await client.get("/api/v1/tasks", headers=stranger["headers"])
        assert resp.json() == []

    async def test_store_write_failure(self, client, owner, supabase):
        await client.get("/api/v1/me", headers=owner["headers"])
        supabase.db.empty_results.add(("task", "insert"))

        resp = await client.post("/api/v1/tasks", headers=owner["headers"], json={})

        assert resp.status_code == StoreWriteError.status_code
        assert resp.json()["detail"] == "Unable to insert item in task"


class TestAccounts:
    async def test_update_current_account(self, client, owner):
        resp = await client.put("/api/v1/accounts/current", headers=owner["headers"], json={"name": "Acme Ltd"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Acme Ltd"

    async def test_upload_logo(self, client, owner, supabase):
        resp = await client.post(
            "/api/v1/accounts/current/logo",
            headers=owner["headers"],
            files={"file": ("logo.png", b"\x89PNG", "image/png")},
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["logo_image_path"].startswith(f"{owner['id']}/logo/")
        assert data["logo_image_url"] == f"https://storage.test/accounts/{data['logo_image_path']}"

    async def test_upload_failure(self, client, owner, supabase):
        supabase.storage.fail_uploads = True
        resp = await client.post(
            "/api/v1/accounts/current/logo",
            headers=owner["headers"],
            files={"file": ("logo.png", b"\x89PNG", "image/png")},
        )
        assert resp.status_code == 502

    async def test_members_and_roles(self, client, owner, invitee):
        await _join(client, owner, invitee, "guest")

        resp = await client.get("/api/v1/accounts/current/members", headers=owner["headers"])
        assert {m["email"] for m in resp.json()} == {"owner@example.com", "invitee@example.com"}

        resp = await client.put(f"/api/v1/accounts/current/members/{invitee['id']}/role",
                                headers=owner["headers"], json={"role": "manager"})
        assert resp.status_code == 200
        assert resp.json()["role"] == "manager"

        resp = await client.put(f"/api/v1/accounts/current/members/{owner['id']}/role",
                                headers=owner["headers"], json={"role": "guest"})
        assert resp.status_code == 400

    async def test_non_admin_cannot_edit_account(self, client, owner, invitee):
        await _join(client, owner, invitee, "manager")
        resp = await client.put("/api/v1/accounts/current", headers=invitee["headers"], json={"name": "X"})
        assert resp.status_code == 403


class TestUsers:
    async def test_update_profile(self, client, owner):
        resp = await client.put("/api/v1/users/me", headers=owner["headers"], json={"name": "  Liv  "})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Liv"

        resp = await client.put("/api/v1/users/me", headers=owner["headers"], json={"name": "  "})
        assert resp.status_code == 422

    async def test_upload_image(self, client, owner):
        resp = await client.post(
            "/api/v1/users/me/images/hero",
            headers=owner["headers"],
            files={"file": ("hero.jpg", b"jpeg", "image/jpeg")},
        )
        assert resp.status_code == 200, resp.text
        assert f"/users/{owner['id']}/hero-" in resp.json()["path"]

        resp = await client.post(
            "/api/v1/users/me/images/banner",
            headers=owner["headers"],
            files={"file": ("x.jpg", b"jpeg", "image/jpeg")},
        )
        assert resp.status_code == 404

    async def test_profiles_visible_to_account_members_only(self, client, owner, invitee, make_user):
        await _join(client, owner, invitee, "guest")
        stranger = make_user("stranger@example.com")
        await client.get("/api/v1/me", headers=stranger["headers"])

        resp = await client.get(f"/api/v1/users/{invitee['id']}", headers=owner["headers"])
        assert resp.status_code == 200
        assert resp.json()["email"] == "invitee@example.com"

        resp = await client.get(f"/api/v1/users/{invitee['id']}", headers=stranger["headers"])
        assert resp.status_code == 403


class TestFiles:
    async def test_url_for_own_account(self, client, owner):
        await client.get("/api/v1/me", headers=owner["headers"])
        path = f"{owner['id']}/logo/1-logo.png"

        resp = await client.get("/api/v1/files/url", headers=owner["headers"], params={"path": path})

        assert resp.status_code == 200
        assert resp.json()["url"] == f"https://storage.test/accounts/{path}"

    async def test_url_for_other_account(self, client, owner):
        resp = await client.get("/api/v1/files/url", headers=owner["headers"], params={"path": "other/logo.png"})
        assert resp.status_code == 403
