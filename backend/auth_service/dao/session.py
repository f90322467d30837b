"""
Session DAO.

WHY: Sessions are the revocation list for signed tokens. Creating, finding
and revoking them is all the auth flows need.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.core.auth import utcnow
from auth_service.dao.base import BaseDAO
from auth_service.models.session import UserSession


class SessionDAO(BaseDAO[UserSession]):
    """Data Access Object for user sessions."""

    def __init__(self, session: AsyncSession):
        super().__init__(UserSession, session)

    async def create_session(
        self,
        user_id: int,
        jti: str,
        expires_at: datetime,
        ip_address: Optional[str] = None,
    ) -> UserSession:
        """
        Store a new, unrevoked session.

        Args:
            user_id: Owner of the session
            jti: Random session identifier (also the token's `sid` claim)
            expires_at: Session expiry (naive UTC)
            ip_address: IP address of the login request

        Returns:
            Created UserSession
        """
        return await self.create(
            jti=jti,
            user_id=user_id,
            expires_at=expires_at,
            revoked=False,
            created_ip=ip_address,
        )

    async def get_by_jti(self, jti: str) -> Optional[UserSession]:
        """Look up a session by its identifier."""
        return await self.get(jti)

    async def revoke(self, jti: str) -> bool:
        """
        Revoke one session.

        Returns:
            True if a live row was revoked, False if it was already revoked
        """
        changed = await self.update_where(
            UserSession.jti == jti,
            UserSession.revoked.is_(False),
            revoked=True,
            revoked_at=utcnow(),
        )
        return changed == 1

    async def revoke_all_for_user(self, user_id: int) -> int:
        """
        Revoke every session of a user.

        WHY: After a credential change every device must log in again.

        Returns:
            Number of sessions revoked
        """
        return await self.update_where(
            UserSession.user_id == user_id,
            UserSession.revoked.is_(False),
            revoked=True,
            revoked_at=utcnow(),
        )
