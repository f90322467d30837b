"""
One-time token persistence.

Tokens move through a single state change: `used_at` goes from NULL to a
timestamp, either because the token was redeemed or because a newer token
of the same type replaced it. Both transitions are guarded UPDATEs on
`used_at IS NULL`, so a token can leave the unused state only once.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.core.auth import generate_opaque_token, utcnow
from auth_service.core.exceptions import TokenAlreadyUsedError
from auth_service.dao.base import BaseDAO
from auth_service.models.verification_token import TokenType, VerificationToken


class VerificationTokenDAO(BaseDAO[VerificationToken]):
    """Email verification and password reset tokens."""

    def __init__(self, session: AsyncSession):
        super().__init__(VerificationToken, session)

    async def create_token(
        self,
        user_id: int,
        token_type: TokenType,
        expires_at: datetime,
        ip_address: Optional[str] = None,
    ) -> VerificationToken:
        """
        Store a freshly generated opaque token.

        Callers run invalidate_previous_tokens first, so at most one token
        per user and type is unused at a time.

        Args:
            user_id: Owner of the token
            token_type: Which flow the token belongs to
            expires_at: Expiry instant (naive UTC)
            ip_address: Address of the request that asked for it
        """
        return await self.create(
            user_id=user_id,
            token=generate_opaque_token(),
            token_type=token_type,
            expires_at=expires_at,
            created_ip=ip_address,
        )

    async def get_by_token(self, token: str, token_type: TokenType) -> Optional[VerificationToken]:
        """
        Find a token by value within one flow.

        A reset token presented to email verification (or the reverse)
        is simply not found.
        """
        result = await self.session.execute(
            select(VerificationToken).where(
                VerificationToken.token == token,
                VerificationToken.token_type == token_type,
            )
        )
        return result.scalar_one_or_none()

    async def mark_as_used(self, token_id: int, ip_address: Optional[str] = None) -> None:
        """
        Redeem a token.

        Raises:
            TokenAlreadyUsedError: If another request redeemed or replaced
                the token after it was read
        """
        changed = await self.update_where(
            VerificationToken.id == token_id,
            VerificationToken.used_at.is_(None),
            used_at=utcnow(),
            used_ip=ip_address,
        )
        if changed != 1:
            raise TokenAlreadyUsedError()

    async def invalidate_previous_tokens(self, user_id: int, token_type: TokenType) -> int:
        """
        Retire every unused token of one type for a user.

        Returns:
            Number of tokens retired
        """
        return await self.update_where(
            VerificationToken.user_id == user_id,
            VerificationToken.token_type == token_type,
            VerificationToken.used_at.is_(None),
            used_at=utcnow(),
        )
