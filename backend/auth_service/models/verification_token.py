"""
One-time tokens for email verification and password reset.

Lifecycle of a row:

    issued (used_at NULL) --redeemed--> used_at set, used_ip set
                          --replaced--> used_at set (a newer token was issued
                                        or a sibling was redeemed)

Expiry is not a state change; it is evaluated against `expires_at` at the
moment of use. Verification tokens live 24 hours, reset tokens 1 hour
(both configurable).
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from auth_service.core.auth import utcnow
from auth_service.models.base import Base, IntegerIdMixin, TimestampMixin


class TokenType(str, enum.Enum):
    """Which flow a token belongs to. Lookups are always scoped by type."""

    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


class VerificationToken(Base, IntegerIdMixin, TimestampMixin):
    __tablename__ = "verification_tokens"
    __repr_attrs__ = ("id", "token_type", "user_id", "expires_at", "used_at")

    # 48 random bytes, hex encoded; only ever delivered inside an email link
    token = Column(String(255), unique=True, index=True, nullable=False)

    # Persisted as the member name (EMAIL_VERIFICATION / PASSWORD_RESET)
    token_type = Column(Enum(TokenType, name="tokentype"), nullable=False)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)

    created_ip = Column(String(45), nullable=True)
    used_ip = Column(String(45), nullable=True)

    user = relationship("User")

    __table_args__ = (
        # Serves invalidate_previous_tokens: user + type, unused only
        Index("ix_verification_tokens_user_type_used", "user_id", "token_type", "used_at"),
    )

    @property
    def is_used(self) -> bool:
        return self.used_at is not None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Expired from the expiry instant onward; a tie counts as expired."""
        return (now or utcnow()) >= self.expires_at
