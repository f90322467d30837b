"""
Queries and guarded updates for users, one-time tokens and sessions.

Services never build SQL themselves; they go through these classes.
"""

from auth_service.dao.base import BaseDAO
from auth_service.dao.user import UserDAO, normalize_email
from auth_service.dao.verification_token import VerificationTokenDAO
from auth_service.dao.session import SessionDAO

__all__ = [
    "BaseDAO",
    "UserDAO",
    "normalize_email",
    "VerificationTokenDAO",
    "SessionDAO",
]
