"""
User persistence.

Emails are trimmed and lowercased before they are stored or compared, so
"Ana@X.com " and "ana@x.com" name the same account everywhere.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.core.auth import utcnow
from auth_service.core.exceptions import EmailAlreadyRegisteredError
from auth_service.dao.base import BaseDAO
from auth_service.models.user import User


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserDAO(BaseDAO[User]):
    """Lookup by email, creation with duplicate detection, and the two updates the flows make."""

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    def _email_matches(self, email: str):
        # lower() on the column also covers rows written before normalization
        return func.lower(User.email) == normalize_email(email)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(self._email_matches(email)))
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        result = await self.session.execute(
            select(User.id).where(self._email_matches(email)).limit(1)
        )
        return result.first() is not None

    async def create_user(self, email: str, hashed_password: str, name: str) -> User:
        """
        Insert an unverified user.

        The existence check answers the common case; the unique index on
        email catches two signups racing for the same address.

        Args:
            email: Address as submitted (normalized here)
            hashed_password: bcrypt hash from hash_password()
            name: Display name

        Raises:
            EmailAlreadyRegisteredError: If the address already has an account
        """
        email = normalize_email(email)
        if await self.email_exists(email):
            raise EmailAlreadyRegisteredError()

        try:
            return await self.create(
                email=email,
                hashed_password=hashed_password,
                name=name,
                email_verified=False,
            )
        except IntegrityError:
            await self.session.rollback()
            raise EmailAlreadyRegisteredError()

    async def mark_email_verified(self, user_id: int) -> Optional[User]:
        return await self.update(user_id, email_verified=True, updated_at=utcnow())

    async def update_password(self, user_id: int, hashed_password: str) -> Optional[User]:
        """Store a new bcrypt hash. Returns None if the user is gone."""
        return await self.update(user_id, hashed_password=hashed_password, updated_at=utcnow())
