"""
Unit tests for VerificationTokenDAO.

WHAT: Tests the VerificationTokenDAO for managing email verification
and password reset tokens.

WHY: DAO tests ensure data access operations work correctly:
1. Token creation with opaque 96-character values
2. Token lookup scoped to a token type
3. Consumption that succeeds exactly once
4. Invalidation of a user's other unused tokens

HOW: Uses pytest with async SQLite database for isolated testing.
"""

import pytest
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.core.auth import utcnow
from auth_service.core.exceptions import TokenAlreadyUsedError
from auth_service.dao.verification_token import VerificationTokenDAO
from auth_service.models.verification_token import TokenType
from tests.factories import UserFactory, VerificationTokenFactory


class TestVerificationTokenDAO:
    """Unit tests for VerificationTokenDAO."""

    @pytest.mark.asyncio
    async def test_create_token(self, db_session: AsyncSession):
        """
        Test creating a verification token.

        WHY: Verifies that tokens are created with:
        - A 48-byte hex token string
        - The requested expiry
        - User association, unused
        """
        user = await UserFactory.create(db_session)
        expires_at = utcnow() + timedelta(hours=24)

        dao = VerificationTokenDAO(db_session)
        token = await dao.create_token(
            user_id=user.id,
            token_type=TokenType.EMAIL_VERIFICATION,
            expires_at=expires_at,
            ip_address="203.0.113.7",
        )

        assert token.id is not None
        assert token.user_id == user.id
        assert token.token_type == TokenType.EMAIL_VERIFICATION
        assert len(token.token) == 96
        assert token.expires_at == expires_at
        assert token.created_ip == "203.0.113.7"
        assert not token.is_used

    @pytest.mark.asyncio
    async def test_get_by_token_is_scoped_to_type(self, db_session: AsyncSession):
        """
        A reset token is not found when looked up as a verification token.

        WHY: Prevents a reset link from verifying an email and vice versa.
        """
        user = await UserFactory.create(db_session)
        reset = await VerificationTokenFactory.create(
            db_session, user, token_type=TokenType.PASSWORD_RESET
        )

        dao = VerificationTokenDAO(db_session)

        assert await dao.get_by_token(reset.token, TokenType.PASSWORD_RESET) is not None
        assert await dao.get_by_token(reset.token, TokenType.EMAIL_VERIFICATION) is None

    @pytest.mark.asyncio
    async def test_get_by_token_unknown(self, db_session: AsyncSession):
        dao = VerificationTokenDAO(db_session)

        assert await dao.get_by_token("nope", TokenType.EMAIL_VERIFICATION) is None

    @pytest.mark.asyncio
    async def test_mark_as_used_succeeds_once(self, db_session: AsyncSession):
        """
        Consuming a token twice fails the second time.

        WHY: The conditional update is what stops two concurrent requests
        from both consuming one token.
        """
        user = await UserFactory.create(db_session)
        token = await VerificationTokenFactory.create(db_session, user)

        dao = VerificationTokenDAO(db_session)
        await dao.mark_as_used(token.id, ip_address="198.51.100.1")

        with pytest.raises(TokenAlreadyUsedError):
            await dao.mark_as_used(token.id)

        await db_session.refresh(token)
        assert token.is_used
        assert token.used_ip == "198.51.100.1"

    @pytest.mark.asyncio
    async def test_invalidate_previous_tokens(self, db_session: AsyncSession):
        """
        Invalidating marks only the user's unused tokens of that type.
        """
        user = await UserFactory.create(db_session)
        other_user = await UserFactory.create(db_session, email="other@example.com")

        old_1 = await VerificationTokenFactory.create(db_session, user)
        old_2 = await VerificationTokenFactory.create(db_session, user)
        reset = await VerificationTokenFactory.create(
            db_session, user, token_type=TokenType.PASSWORD_RESET
        )
        foreign = await VerificationTokenFactory.create(db_session, other_user)

        dao = VerificationTokenDAO(db_session)
        count = await dao.invalidate_previous_tokens(user.id, TokenType.EMAIL_VERIFICATION)

        assert count == 2
        for record in (old_1, old_2, reset, foreign):
            await db_session.refresh(record)
        assert old_1.is_used
        assert old_2.is_used
        assert not reset.is_used
        assert not foreign.is_used

    @pytest.mark.asyncio
    async def test_is_expired_at_exact_expiry(self, db_session: AsyncSession):
        """Expiry wins on a tie: a token is expired at its expiry instant."""
        user = await UserFactory.create(db_session)
        expires_at = utcnow() + timedelta(minutes=5)
        token = await VerificationTokenFactory.create(db_session, user, expires_at=expires_at)

        assert not token.is_expired(expires_at - timedelta(microseconds=1))
        assert token.is_expired(expires_at)
