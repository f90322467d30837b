"""
Session validation.

WHAT: One function that takes the raw Authorization header and decides
whether it names a live session.

WHY: A session token is valid only if BOTH hold:
1. Its signature and `exp` claim verify
2. The session row named by its `sid` claim exists, belongs to `sub`,
   is not revoked and has not expired

Every route that needs authentication calls validate_session (through the
get_current_session dependency) instead of re-deriving the two checks.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from auth_service.core.auth import decode_session_token, utcnow
from auth_service.core.config import Settings
from auth_service.core.exceptions import SessionTokenExpiredError, SessionTokenInvalidError
from auth_service.dao.session import SessionDAO

logger = logging.getLogger(__name__)


class InvalidReason(str, Enum):
    """Why a session was rejected. Logged, never returned to the caller."""

    MISSING_HEADER = "missing_header"
    MALFORMED_HEADER = "malformed_header"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_INVALID = "token_invalid"
    MISSING_CLAIMS = "missing_claims"
    SESSION_NOT_FOUND = "session_not_found"
    SUBJECT_MISMATCH = "subject_mismatch"
    SESSION_REVOKED = "session_revoked"
    SESSION_EXPIRED = "session_expired"


@dataclass(frozen=True)
class SessionValidation:
    """
    Tagged result of validate_session.

    Either `valid=False` with a `reason`, or `valid=True` with the
    authenticated `user_id` and session id `sid`.
    """

    valid: bool
    user_id: Optional[int] = None
    sid: Optional[str] = None
    reason: Optional[InvalidReason] = None

    @classmethod
    def ok(cls, user_id: int, sid: str) -> "SessionValidation":
        return cls(valid=True, user_id=user_id, sid=sid)

    @classmethod
    def unauthorized(cls, reason: InvalidReason) -> "SessionValidation":
        return cls(valid=False, reason=reason)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Return the token of a `Bearer <token>` header, or None.

    The scheme is matched case-insensitively.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


async def validate_session(
    authorization: Optional[str],
    session_dao: SessionDAO,
    settings: Settings,
    now: Optional[datetime] = None,
) -> SessionValidation:
    """
    Validate a raw Authorization header against signature and session row.

    Args:
        authorization: Value of the Authorization header (may be None)
        session_dao: DAO used to look up the session row
        settings: Application settings (signing secret)
        now: Current time (naive UTC), injectable for tests

    Returns:
        SessionValidation
    """
    if authorization is None:
        return SessionValidation.unauthorized(InvalidReason.MISSING_HEADER)

    token = extract_bearer_token(authorization)
    if token is None:
        return SessionValidation.unauthorized(InvalidReason.MALFORMED_HEADER)

    try:
        payload = decode_session_token(token, settings)
    except SessionTokenExpiredError:
        return SessionValidation.unauthorized(InvalidReason.TOKEN_EXPIRED)
    except SessionTokenInvalidError:
        return SessionValidation.unauthorized(InvalidReason.TOKEN_INVALID)

    sub = payload.get("sub")
    sid = payload.get("sid")
    if not sub or not sid:
        return SessionValidation.unauthorized(InvalidReason.MISSING_CLAIMS)

    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        return SessionValidation.unauthorized(InvalidReason.MISSING_CLAIMS)

    session = await session_dao.get_by_jti(sid)
    if session is None:
        return SessionValidation.unauthorized(InvalidReason.SESSION_NOT_FOUND)

    if session.user_id != user_id:
        logger.warning(
            "Session token subject does not own the session",
            extra={"sid": sid},
        )
        return SessionValidation.unauthorized(InvalidReason.SUBJECT_MISMATCH)

    if session.revoked:
        return SessionValidation.unauthorized(InvalidReason.SESSION_REVOKED)

    if (now or utcnow()) >= session.expires_at:
        return SessionValidation.unauthorized(InvalidReason.SESSION_EXPIRED)

    return SessionValidation.ok(user_id=user_id, sid=sid)
