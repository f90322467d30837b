"""
Unit tests for UserDAO.

WHY: Email handling is case-insensitive everywhere; duplicates must surface
as EmailAlreadyRegisteredError regardless of casing.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.core.exceptions import EmailAlreadyRegisteredError
from auth_service.dao.user import UserDAO, normalize_email
from tests.factories import UserFactory


def test_normalize_email():
    assert normalize_email("  Ana@X.COM ") == "ana@x.com"


class TestUserDAO:
    """Unit tests for UserDAO."""

    @pytest.mark.asyncio
    async def test_create_user_lowercases_email(self, db_session: AsyncSession):
        dao = UserDAO(db_session)

        user = await dao.create_user(email="Ana@X.com", hashed_password="hash", name="Ana")

        assert user.id is not None
        assert user.email == "ana@x.com"
        assert user.email_verified is False

    @pytest.mark.asyncio
    async def test_create_user_duplicate_any_case(self, db_session: AsyncSession):
        await UserFactory.create(db_session, email="ana@x.com")
        dao = UserDAO(db_session)

        with pytest.raises(EmailAlreadyRegisteredError):
            await dao.create_user(email="ANA@x.com", hashed_password="hash", name="Ana 2")

    @pytest.mark.asyncio
    async def test_get_by_email_case_insensitive(self, db_session: AsyncSession):
        user = await UserFactory.create(db_session, email="ana@x.com")
        dao = UserDAO(db_session)

        found = await dao.get_by_email("ANA@X.COM")

        assert found is not None
        assert found.id == user.id
        assert await dao.email_exists("Ana@x.com") is True
        assert await dao.email_exists("ghost@nowhere.com") is False

    @pytest.mark.asyncio
    async def test_mark_email_verified(self, db_session: AsyncSession):
        user = await UserFactory.create(db_session, email_verified=False)

        updated = await UserDAO(db_session).mark_email_verified(user.id)

        assert updated.email_verified is True

    @pytest.mark.asyncio
    async def test_update_password(self, db_session: AsyncSession):
        user = await UserFactory.create(db_session)

        updated = await UserDAO(db_session).update_password(user.id, "new-hash")

        assert updated.hashed_password == "new-hash"

    @pytest.mark.asyncio
    async def test_update_missing_user_returns_none(self, db_session: AsyncSession):
        assert await UserDAO(db_session).update_password(999, "x") is None
