"""
Integration tests for login, me and logout.

WHY: Verifies that credentials, verification state and session rows work
together through the HTTP layer:
- Unknown email and wrong password are indistinguishable
- A correct password for an unverified account is 403, never 401
- A token is honoured only while its session row is live
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from httpx import AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.core.auth import utcnow
from auth_service.dao.session import SessionDAO
from auth_service.services.auth import LOGOUT_MESSAGE
from tests.factories import SessionFactory, UserFactory, bearer


class TestLogin:
    """Tests for POST /login."""

    @pytest.mark.asyncio
    async def test_login_flow_success(
        self, client: AsyncClient, db_session: AsyncSession, api_prefix, test_settings
    ):
        """
        Test complete login flow.

        WHY: The token's sid claim names a stored, live session row.
        """
        user = await UserFactory.create(db_session, name="Ana", email="ana@x.com")

        response = await client.post(
            f"{api_prefix}/login", json={"email": "ANA@x.com", "password": "secret1"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == user.id
        assert data["user"]["email"] == "ana@x.com"
        assert data["user"]["name"] == "Ana"
        assert data["user"]["email_verified"] is True
        assert "hashed_password" not in data["user"]
        assert data["expires_at"]

        claims = jwt.decode(data["token"], test_settings.JWT_SECRET, algorithms=["HS256"])
        assert claims["sub"] == str(user.id)
        assert claims["email"] == "ana@x.com"
        session = await SessionDAO(db_session).get_by_jti(claims["sid"])
        assert session is not None
        assert session.user_id == user.id
        assert session.revoked is False

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_identical(
        self, client: AsyncClient, db_session: AsyncSession, api_prefix
    ):
        """
        WHY: Byte-identical bodies prevent account enumeration through login.
        """
        await UserFactory.create(db_session, email="ana@x.com")

        wrong = await client.post(
            f"{api_prefix}/login", json={"email": "ana@x.com", "password": "wrong-pass"}
        )
        unknown = await client.post(
            f"{api_prefix}/login", json={"email": "ghost@nowhere.com", "password": "wrong-pass"}
        )

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.content == unknown.content
        assert wrong.json()["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_unverified_with_correct_password_is_forbidden(
        self, client: AsyncClient, db_session: AsyncSession, api_prefix
    ):
        await UserFactory.create(db_session, email="ana@x.com", email_verified=False)

        response = await client.post(
            f"{api_prefix}/login", json={"email": "ana@x.com", "password": "secret1"}
        )

        assert response.status_code == 403
        assert response.json()["error"] == "EmailNotVerifiedError"

    @pytest.mark.asyncio
    async def test_unverified_with_wrong_password_is_unauthorized(
        self, client: AsyncClient, db_session: AsyncSession, api_prefix
    ):
        """The password is checked before verification state."""
        await UserFactory.create(db_session, email="ana@x.com", email_verified=False)

        response = await client.post(
            f"{api_prefix}/login", json={"email": "ana@x.com", "password": "nope-nope"}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_missing_password(self, client: AsyncClient, api_prefix):
        response = await client.post(f"{api_prefix}/login", json={"email": "ana@x.com"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_email_burns_configured_hash_cost(
        self, client: AsyncClient, api_prefix, test_settings
    ):
        with patch("auth_service.services.auth.dummy_verify") as dummy:
            response = await client.post(
                f"{api_prefix}/login", json={"email": "ghost@nowhere.com", "password": "secret1"}
            )

        assert response.status_code == 401
        dummy.assert_called_once_with(rounds=test_settings.PASSWORD_HASH_ROUNDS)


class TestMe:
    """Tests for GET /me."""

    @pytest.mark.asyncio
    async def test_get_current_user_with_valid_token(
        self, client: AsyncClient, db_session: AsyncSession, api_prefix, test_settings
    ):
        user = await UserFactory.create(db_session, name="Ana", email="ana@x.com")
        _, token = await SessionFactory.create(db_session, user, test_settings)

        response = await client.get(f"{api_prefix}/me", headers=bearer(token))

        assert response.status_code == 200
        data = response.json()["user"]
        assert data["id"] == user.id
        assert data["email"] == "ana@x.com"
        assert "created_at" in data

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"Authorization": "Bearer"},
            {"Authorization": "Basic abc"},
            {"Authorization": "Bearer not-a-jwt"},
        ],
    )
    async def test_get_current_user_without_valid_header(
        self, client: AsyncClient, api_prefix, headers
    ):
        response = await client.get(f"{api_prefix}/me", headers=headers)

        assert response.status_code == 401
        assert response.json()["error"] == "AuthenticationError"

    @pytest.mark.asyncio
    async def test_rejections_are_indistinguishable(
        self, client: AsyncClient, db_session: AsyncSession, api_prefix, test_settings
    ):
        """
        WHY: Callers cannot tell a revoked session from an expired or
        forged one.
        """
        user = await UserFactory.create(db_session)
        _, revoked = await SessionFactory.create(db_session, user, test_settings, revoked=True)
        _, expired = await SessionFactory.create(
            db_session, user, test_settings, expires_at=utcnow() - timedelta(seconds=1)
        )

        bodies = set()
        for token in (revoked, expired, "garbage"):
            response = await client.get(f"{api_prefix}/me", headers=bearer(token))
            assert response.status_code == 401
            bodies.add(response.content)

        assert len(bodies) == 1


class TestLogout:
    """Tests for POST /logout."""

    @pytest.mark.asyncio
    async def test_logout_invalidates_token(
        self, client: AsyncClient, db_session: AsyncSession, api_prefix, test_settings
    ):
        user = await UserFactory.create(db_session)
        _, token = await SessionFactory.create(db_session, user, test_settings)

        response = await client.post(f"{api_prefix}/logout", headers=bearer(token))

        assert response.status_code == 200
        assert response.json() == {"message": LOGOUT_MESSAGE}

        me = await client.get(f"{api_prefix}/me", headers=bearer(token))
        assert me.status_code == 401

        again = await client.post(f"{api_prefix}/logout", headers=bearer(token))
        assert again.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_keeps_other_sessions(
        self, client: AsyncClient, db_session: AsyncSession, api_prefix, test_settings
    ):
        """
        WHY: Logging out on one device leaves the user's other devices signed in.
        """
        user = await UserFactory.create(db_session)
        _, phone = await SessionFactory.create(db_session, user, test_settings)
        _, laptop = await SessionFactory.create(db_session, user, test_settings)

        await client.post(f"{api_prefix}/logout", headers=bearer(phone))

        assert (await client.get(f"{api_prefix}/me", headers=bearer(phone))).status_code == 401
        assert (await client.get(f"{api_prefix}/me", headers=bearer(laptop))).status_code == 200

    @pytest.mark.asyncio
    async def test_logout_without_token(self, client: AsyncClient, api_prefix):
        response = await client.post(f"{api_prefix}/logout")

        assert response.status_code == 401
