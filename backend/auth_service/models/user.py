"""
Account holder.

A user row is created unverified by signup, flipped to verified by the
email verification flow, and gets a new password hash from the reset flow.
Rows are never deleted by this service; tokens and sessions cascade if an
operator removes one.
"""

from sqlalchemy import Boolean, Column, String

from auth_service.models.base import Base, IntegerIdMixin, TimestampMixin


class User(Base, IntegerIdMixin, TimestampMixin):
    __tablename__ = "users"
    __repr_attrs__ = ("id", "email", "email_verified")

    name = Column(String(255), nullable=False)

    # Stored lowercased; the unique index makes one mailbox one account
    email = Column(String(255), unique=True, index=True, nullable=False)

    # bcrypt, cost factor from settings
    hashed_password = Column(String(255), nullable=False)

    # Login is refused with 403 until this is set
    email_verified = Column(Boolean, default=False, nullable=False)
