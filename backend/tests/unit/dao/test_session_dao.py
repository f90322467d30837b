"""
Unit tests for SessionDAO.

WHY: Session rows are the revocation list for signed tokens; revoking one
session must leave the others alone, and revoking all must reach every row.
"""

import pytest
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.core.auth import generate_session_id, utcnow
from auth_service.dao.session import SessionDAO
from tests.factories import SessionFactory, UserFactory


class TestSessionDAO:
    """Unit tests for SessionDAO."""

    @pytest.mark.asyncio
    async def test_create_and_get_session(self, db_session: AsyncSession):
        user = await UserFactory.create(db_session)
        dao = SessionDAO(db_session)
        jti = generate_session_id()
        expires_at = utcnow() + timedelta(hours=24)

        await dao.create_session(user.id, jti, expires_at, ip_address="203.0.113.9")
        session = await dao.get_by_jti(jti)

        assert session is not None
        assert session.user_id == user.id
        assert session.revoked is False
        assert session.created_ip == "203.0.113.9"
        assert session.is_active()

    @pytest.mark.asyncio
    async def test_get_unknown_session(self, db_session: AsyncSession):
        assert await SessionDAO(db_session).get_by_jti("missing") is None

    @pytest.mark.asyncio
    async def test_revoke_only_that_session(self, db_session: AsyncSession, test_settings):
        user = await UserFactory.create(db_session)
        first, _ = await SessionFactory.create(db_session, user, test_settings)
        second, _ = await SessionFactory.create(db_session, user, test_settings)

        dao = SessionDAO(db_session)

        assert await dao.revoke(first.jti) is True
        # Already revoked: nothing changes
        assert await dao.revoke(first.jti) is False

        await db_session.refresh(first)
        await db_session.refresh(second)
        assert first.revoked is True
        assert first.revoked_at is not None
        assert second.revoked is False

    @pytest.mark.asyncio
    async def test_revoke_all_for_user(self, db_session: AsyncSession, test_settings):
        user = await UserFactory.create(db_session)
        other = await UserFactory.create(db_session, email="other@example.com")
        mine = [
            (await SessionFactory.create(db_session, user, test_settings))[0]
            for _ in range(3)
        ]
        theirs, _ = await SessionFactory.create(db_session, other, test_settings)

        count = await SessionDAO(db_session).revoke_all_for_user(user.id)

        assert count == 3
        for row in mine + [theirs]:
            await db_session.refresh(row)
        assert all(row.revoked for row in mine)
        assert theirs.revoked is False

    @pytest.mark.asyncio
    async def test_is_active_respects_expiry(self, db_session: AsyncSession, test_settings):
        user = await UserFactory.create(db_session)
        expires_at = utcnow() + timedelta(minutes=1)
        row, _ = await SessionFactory.create(db_session, user, test_settings, expires_at=expires_at)

        assert row.is_active(expires_at - timedelta(seconds=1))
        assert not row.is_active(expires_at)
