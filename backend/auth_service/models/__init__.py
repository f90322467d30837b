"""
Tables owned by the auth service.

Importing this package registers every table on Base.metadata, which is
what Alembic autogenerate and the test fixtures' create_all rely on.
"""

from auth_service.models.base import Base
from auth_service.models.user import User
from auth_service.models.verification_token import TokenType, VerificationToken
from auth_service.models.session import UserSession

__all__ = [
    "Base",
    "User",
    "TokenType",
    "VerificationToken",
    "UserSession",
]
