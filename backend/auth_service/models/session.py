"""
User session model.

WHAT: Server-side record of a login, keyed by the random session id (`jti`)
that the signed session token carries as its `sid` claim.

WHY: Signed tokens cannot be recalled once issued. The session row is the
source of truth for revocation: logout flips one row, a password reset
flips all of a user's rows, and a token without a live row is rejected
even when its signature is valid.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from auth_service.core.auth import utcnow
from auth_service.models.base import Base


class UserSession(Base):
    """Revocable login session."""

    __tablename__ = "user_sessions"
    __repr_attrs__ = ("jti", "user_id", "revoked", "expires_at")

    jti = Column(String(64), primary_key=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    expires_at = Column(DateTime, nullable=False)
    revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime, nullable=True)

    created_ip = Column(String(45), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User")

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """A session is usable only while not revoked and `now < expires_at`."""
        return not self.revoked and (now or utcnow()) < self.expires_at
