"""Tests for authentication, one-time code and account endpoints."""

from __future__ import annotations

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from httpx import AsyncClient

from bakumania.core.config import settings
from bakumania.core.security import hash_password
from bakumania.repositories import users_orm


async def _stored_code(user_id: int) -> str:
    user = await users_orm.get_user_by_id(user_id)
    return user.otp_code


class TestLoginEndpoint:
    """Tests for POST /auth/login."""

    def test_login_without_body_returns_422(self, client: TestClient):
        response = client.post("/auth/login")
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    def test_login_with_empty_password_returns_422(self, client: TestClient):
        response = client.post("/auth/login", json={"username": "test", "password": ""})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    @pytest.mark.asyncio
    async def test_login_sets_cookie_and_token(self, async_client: AsyncClient, test_users):
        response = await async_client.post(
            "/auth/login", json={"username": "test_user", "password": "secret-pass"}
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["username"] == "test_user"
        assert body["is_admin"] is False
        assert body["access_token"]
        assert "session" in response.cookies

    @pytest.mark.asyncio
    async def test_wrong_password_returns_401(self, async_client: AsyncClient, test_users):
        response = await async_client.post(
            "/auth/login", json={"username": "test_user", "password": "nope-nope"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"] == "INVALID_CREDENTIALS"

    @pytest.mark.asyncio
    async def test_usernames_are_case_sensitive(self, async_client: AsyncClient, test_users):
        response = await async_client.post(
            "/auth/login", json={"username": "TEST_USER", "password": "secret-pass"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestRegisterEndpoint:
    """Tests for POST /auth/register."""

    @pytest.mark.asyncio
    async def test_register_then_login(self, async_client: AsyncClient):
        response = await async_client.post(
            "/auth/register", json={"username": "dan_kuso", "password": "drago-pass"}
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["is_admin"] is False
        login = await async_client.post(
            "/auth/login", json={"username": "dan_kuso", "password": "drago-pass"}
        )
        assert login.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_duplicate_username_returns_409(self, async_client: AsyncClient, test_users):
        response = await async_client.post(
            "/auth/register", json={"username": "test_user", "password": "another-pass"}
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "USERNAME_TAKEN"

    @pytest.mark.asyncio
    async def test_admin_key_grants_admin(self, async_client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "admin_secret_key", "let-me-in")

        granted = await async_client.post(
            "/auth/register",
            json={"username": "runo", "password": "runo-pass", "admin_key": "let-me-in"},
        )
        denied = await async_client.post(
            "/auth/register",
            json={"username": "marucho", "password": "maru-pass", "admin_key": "guess"},
        )

        assert granted.json()["is_admin"] is True
        assert denied.json()["is_admin"] is False

    def test_short_password_returns_422(self, client: TestClient):
        response = client.post("/auth/register", json={"username": "shun", "password": "abc"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    def test_invalid_username_characters_return_422(self, client: TestClient):
        response = client.post(
            "/auth/register", json={"username": "bad name!", "password": "long-enough"}
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT


class TestSessionEndpoints:
    """Tests for GET /auth/me and POST /auth/logout."""

    def test_me_without_auth_returns_401(self, client: TestClient):
        response = client.get("/auth/me")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_me_with_invalid_token_returns_401(self, client: TestClient):
        response = client.get("/auth/me", headers={"Authorization": "Bearer invalid_token"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_me_returns_current_user(self, async_client: AsyncClient, test_users, auth_headers):
        response = await async_client.get("/auth/me", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["username"] == "test_user"

    @pytest.mark.asyncio
    async def test_logout_revokes_token(self, async_client: AsyncClient, test_users, auth_headers):
        logout = await async_client.post("/auth/logout", headers=auth_headers)
        after = await async_client.get("/auth/me", headers=auth_headers)

        assert logout.status_code == status.HTTP_204_NO_CONTENT
        assert after.status_code == status.HTTP_401_UNAUTHORIZED
        assert after.json()["error"] == "TOKEN_REVOKED"

    @pytest.mark.asyncio
    async def test_token_for_deleted_user_rejected(self, async_client: AsyncClient, auth_headers):
        """A valid signature is not enough once the account is gone."""
        response = await async_client.get("/auth/me", headers=auth_headers)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestEmailCodes:
    """Tests for check-email, send-otp and reset-password."""

    @pytest.mark.asyncio
    async def test_check_email_available(self, async_client: AsyncClient):
        response = await async_client.post("/auth/check-email", json={"email": "dan@example.com"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["available"] is True

    @pytest.mark.asyncio
    async def test_check_email_taken_by_verified_account(self, async_client: AsyncClient):
        await users_orm.create_user(
            "dan_kuso", hash_password("drago-pass"), email="dan@example.com", is_verified=True
        )

        response = await async_client.post("/auth/check-email", json={"email": "dan@example.com"})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "EMAIL_TAKEN"

    def test_check_email_malformed_returns_422(self, client: TestClient):
        response = client.post("/auth/check-email", json={"email": "not-an-email"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    @pytest.mark.asyncio
    async def test_send_and_verify_otp(self, async_client: AsyncClient):
        sent = await async_client.post("/auth/send-otp", json={"email": "new@example.com"})
        user_id = sent.json()["user_id"]
        code = await _stored_code(user_id)

        verified = await async_client.put("/auth/send-otp", json={"user_id": user_id, "otp": code})

        assert sent.status_code == status.HTTP_200_OK
        assert verified.status_code == status.HTTP_200_OK
        assert verified.json()["is_verified"] is True
        user = await users_orm.get_user_by_id(user_id)
        assert user.username.startswith(users_orm.TEMP_USERNAME_PREFIX)
        assert user.otp_code is None

    @pytest.mark.asyncio
    async def test_send_otp_reuses_existing_account(self, async_client: AsyncClient):
        first = await async_client.post("/auth/send-otp", json={"email": "new@example.com"})
        second = await async_client.post("/auth/send-otp", json={"email": "new@example.com"})

        assert first.json()["user_id"] == second.json()["user_id"]

    @pytest.mark.asyncio
    async def test_wrong_otp_returns_400(self, async_client: AsyncClient):
        sent = await async_client.post("/auth/send-otp", json={"email": "new@example.com"})
        code = await _stored_code(sent.json()["user_id"])
        wrong = "000000" if code != "000000" else "111111"

        response = await async_client.put(
            "/auth/send-otp", json={"user_id": sent.json()["user_id"], "otp": wrong}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "INVALID_OTP"

    @pytest.mark.asyncio
    async def test_reset_password_flow(self, async_client: AsyncClient):
        user = await users_orm.create_user(
            "dan_kuso", hash_password("old-password"), email="dan@example.com", is_verified=True
        )

        started = await async_client.post("/auth/reset-password", json={"email": "dan@example.com"})
        code = await _stored_code(user.id)
        completed = await async_client.put(
            "/auth/reset-password",
            json={"email": "dan@example.com", "otp": code, "new_password": "new-password"},
        )

        assert started.status_code == status.HTTP_200_OK
        assert "user_id" not in started.json() or started.json()["user_id"] is None
        assert completed.status_code == status.HTTP_200_OK
        old_login = await async_client.post(
            "/auth/login", json={"username": "dan_kuso", "password": "old-password"}
        )
        new_login = await async_client.post(
            "/auth/login", json={"username": "dan_kuso", "password": "new-password"}
        )
        assert old_login.status_code == status.HTTP_401_UNAUTHORIZED
        assert new_login.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_reset_does_not_reveal_unknown_email(self, async_client: AsyncClient, db):
        known = await users_orm.create_user(
            "dan_kuso", hash_password("old-password"), email="dan@example.com"
        )
        for_known = await async_client.post("/auth/reset-password", json={"email": known.email})
        for_unknown = await async_client.post(
            "/auth/reset-password", json={"email": "ghost@example.com"}
        )

        assert for_unknown.status_code == for_known.status_code == status.HTTP_200_OK
        assert for_unknown.json() == for_known.json()

    @pytest.mark.asyncio
    async def test_reset_with_wrong_code_returns_400(self, async_client: AsyncClient):
        await users_orm.create_user("dan_kuso", hash_password("old-password"), email="dan@example.com")

        response = await async_client.put(
            "/auth/reset-password",
            json={"email": "dan@example.com", "otp": "123456", "new_password": "new-password"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestAccountEndpoints:
    """Tests for /user and the admin /users routes."""

    @pytest.mark.asyncio
    async def test_change_password(self, async_client: AsyncClient, test_users, auth_headers):
        wrong = await async_client.put(
            "/user/change-password",
            headers=auth_headers,
            json={"current_password": "not-it", "new_password": "brand-new-pass"},
        )
        changed = await async_client.put(
            "/user/change-password",
            headers=auth_headers,
            json={"current_password": "secret-pass", "new_password": "brand-new-pass"},
        )

        assert wrong.status_code == status.HTTP_401_UNAUTHORIZED
        assert wrong.json()["error"] == "INVALID_PASSWORD"
        assert changed.status_code == status.HTTP_200_OK
        assert "session" in changed.cookies
        login = await async_client.post(
            "/auth/login", json={"username": "test_user", "password": "brand-new-pass"}
        )
        assert login.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_update_profile(self, async_client: AsyncClient, test_users, auth_headers):
        response = await async_client.put(
            "/user/profile", headers=auth_headers, json={"name": "  Dan Kuso "}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["name"] == "Dan Kuso"
        assert "password_hash" not in response.json()

    @pytest.mark.asyncio
    async def test_list_users_requires_admin(
        self, async_client: AsyncClient, test_users, auth_headers, admin_headers
    ):
        forbidden = await async_client.get("/users", headers=auth_headers)
        allowed = await async_client.get("/users", headers=admin_headers)

        assert forbidden.status_code == status.HTTP_403_FORBIDDEN
        assert allowed.status_code == status.HTTP_200_OK
        assert {u["username"] for u in allowed.json()} == {"test_user", "test_admin"}
        assert all("otp_code" not in u for u in allowed.json())

    @pytest.mark.asyncio
    async def test_admin_update_subscription(self, async_client: AsyncClient, test_users, admin_headers):
        target = await users_orm.get_user("test_user")

        updated = await async_client.patch(
            "/users", headers=admin_headers, json={"user_id": target.id, "subscription_plan": "pro"}
        )
        empty = await async_client.patch("/users", headers=admin_headers, json={"user_id": target.id})
        missing = await async_client.patch(
            "/users", headers=admin_headers, json={"user_id": 9999, "is_admin": True}
        )
        invalid = await async_client.patch(
            "/users", headers=admin_headers, json={"user_id": target.id, "subscription_plan": "gold"}
        )

        assert updated.status_code == status.HTTP_200_OK
        assert updated.json()["subscription_plan"] == "pro"
        assert empty.status_code == status.HTTP_400_BAD_REQUEST
        assert missing.status_code == status.HTTP_404_NOT_FOUND
        assert invalid.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT
