"""
API tests for sign up, sign in and the current user.

Runs the app in-process over httpx's ASGI transport against a fresh SQLite database.
"""

import pytest

from mediashelf.core.constants import ROLE_ADMIN
from mediashelf.db.repositories import users as users_repo


class TestSignUp:
    """POST /api/auth/signup"""

    @pytest.mark.asyncio
    async def test_signup_returns_token_and_user(self, api, make_invite):
        """A valid invite creates the account and returns a bearer token."""
        invite = await make_invite()
        r = await api.post(
            "/api/auth/signup",
            json={"email": "Ann@Example.com", "password": "password123", "invite_code": invite.code, "display_name": "Ann"},
        )
        assert r.status_code == 201
        data = r.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["user"]["email"] == "ann@example.com"
        assert data["user"]["role"] == "user"
        assert "password_hash" not in data["user"]

    @pytest.mark.asyncio
    async def test_bad_invite_is_400(self, api):
        """An unknown invite code returns 400 with a readable message."""
        r = await api.post(
            "/api/auth/signup",
            json={"email": "ann@example.com", "password": "password123", "invite_code": "AAA-BBB-CCC-DDD"},
        )
        assert r.status_code == 400
        assert r.json()["detail"] == "Invalid or expired invite code"

    @pytest.mark.asyncio
    async def test_used_invite_is_400(self, api, make_invite):
        """A single-use invite cannot be used twice."""
        invite = await make_invite()
        first = await api.post("/api/auth/signup", json={"email": "a@example.com", "password": "password123", "invite_code": invite.code})
        second = await api.post("/api/auth/signup", json={"email": "b@example.com", "password": "password123", "invite_code": invite.code})
        assert first.status_code == 201
        assert second.status_code == 400

    @pytest.mark.asyncio
    async def test_duplicate_email_is_422(self, api, register, make_invite):
        await register(email="taken@example.com")
        invite = await make_invite()
        r = await api.post(
            "/api/auth/signup",
            json={"email": "taken@example.com", "password": "password123", "invite_code": invite.code},
        )
        assert r.status_code == 422
        assert r.json()["detail"] == "An account with this email already exists"

    @pytest.mark.asyncio
    async def test_missing_fields_are_422(self, api):
        r = await api.post("/api/auth/signup", json={"email": "a@example.com"})
        assert r.status_code == 422

    @pytest.mark.asyncio
    async def test_new_users_are_connected(self, api, register):
        """Everyone who signs up is friends with everyone already there."""
        ann, ann_headers = await register("Ann")
        ben, _ = await register("Ben")
        r = await api.get("/api/auth/friends", headers=ann_headers)
        assert r.status_code == 200
        assert r.json() == [{"id": ben["id"], "display_name": "Ben"}]


class TestSignIn:
    """POST /api/auth/signin"""

    @pytest.mark.asyncio
    async def test_signin(self, api, register):
        user, _ = await register(email="ann@example.com", password="s3cret-pass")
        r = await api.post("/api/auth/signin", json={"email": "ANN@example.com", "password": "s3cret-pass"})
        assert r.status_code == 200
        assert r.json()["user"]["id"] == user["id"]

    @pytest.mark.asyncio
    async def test_wrong_password_is_401(self, api, register):
        await register(email="ann@example.com")
        r = await api.post("/api/auth/signin", json={"email": "ann@example.com", "password": "nope-nope"})
        assert r.status_code == 401
        assert r.json()["detail"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_lockout_is_429_with_retry_after(self, api, register):
        await register(email="ann@example.com")
        for _ in range(5):
            r = await api.post("/api/auth/signin", json={"email": "ann@example.com", "password": "nope-nope"})
            assert r.status_code == 401
        r = await api.post("/api/auth/signin", json={"email": "ann@example.com", "password": "password123"})
        assert r.status_code == 429
        assert int(r.headers["Retry-After"]) > 0


class TestCurrentUser:
    """GET /api/auth/me"""

    @pytest.mark.asyncio
    async def test_me(self, api, register):
        user, headers = await register("Ann")
        r = await api.get("/api/auth/me", headers=headers)
        assert r.status_code == 200
        assert r.json()["display_name"] == "Ann"
        assert r.json()["id"] == user["id"]

    @pytest.mark.asyncio
    async def test_missing_or_bad_token_is_401(self, api):
        assert (await api.get("/api/auth/me")).status_code == 401
        r = await api.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert r.status_code == 401

    @pytest.mark.asyncio
    async def test_role_change_is_visible(self, api, register, session):
        user, headers = await register()
        await users_repo.set_role(session, user["id"], ROLE_ADMIN)
        r = await api.get("/api/auth/me", headers=headers)
        assert r.json()["role"] == ROLE_ADMIN


class TestInviteCheck:
    """POST /api/auth/invite/check"""

    @pytest.mark.asyncio
    async def test_check_does_not_consume(self, api, make_invite):
        invite = await make_invite()
        for _ in range(2):
            r = await api.post("/api/auth/invite/check", json={"code": invite.code.lower()})
            assert r.status_code == 200
            assert r.json() == {"valid": True}

    @pytest.mark.asyncio
    async def test_unknown_code(self, api):
        r = await api.post("/api/auth/invite/check", json={"code": "nope"})
        assert r.json() == {"valid": False}

    @pytest.mark.asyncio
    async def test_code_for_a_specific_email(self, api, make_invite):
        """POST /api/auth/invite/check only validates a bound code for its email"""
        invite = await make_invite(intended_email="sam@example.com")

        r = await api.post("/api/auth/invite/check", json={"code": invite.code, "email": "other@example.com"})
        assert r.json() == {"valid": False}
        r = await api.post("/api/auth/invite/check", json={"code": invite.code, "email": "Sam@example.com"})
        assert r.json() == {"valid": True}
