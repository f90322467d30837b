"""
Password hashing and token issuing utilities.

WHY: This module is the only place that touches cryptographic material:
1. Password hashing with bcrypt (OWASP A07: Authentication Failures)
2. Opaque one-time tokens for email verification and password reset
3. Signed session tokens (JWT, HS256) referencing a server-side session row

A valid session-token signature is necessary but not sufficient: the
session row it names must also be live (see services.session_auth).
"""

import secrets
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError
from passlib.context import CryptContext

from auth_service.core.config import Settings
from auth_service.core.exceptions import (
    SessionTokenExpiredError,
    SessionTokenInvalidError,
)


DEFAULT_PASSWORD_ROUNDS = 10
OPAQUE_TOKEN_BYTES = 48
SESSION_ID_BYTES = 24


def utcnow() -> datetime:
    """
    Current time as a naive UTC datetime.

    WHY: All stored timestamps are naive UTC so comparisons behave the same
    on PostgreSQL and SQLite.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ============================================================================
# Password Hashing
# ============================================================================


@lru_cache(maxsize=None)
def _password_context(rounds: int) -> CryptContext:
    # WHY: One context per cost factor; the cost is encoded in each hash so
    # verification works regardless of the rounds used to create it.
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(password: str, rounds: int = DEFAULT_PASSWORD_ROUNDS) -> str:
    """
    Hash a password using bcrypt.

    WHY: bcrypt is slow by design and salts every hash, so equal passwords
    never produce equal hashes and offline guessing stays expensive.

    Args:
        password: Plain text password
        rounds: bcrypt cost factor (10 in production)

    Returns:
        Hashed password (60 characters, includes salt and cost factor)

    Example:
        >>> hashed = hash_password("secret1")
        >>> len(hashed)
        60
    """
    return _password_context(rounds).hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        plain_password: Password provided by user
        hashed_password: Hashed password from database

    Returns:
        True if password matches, False otherwise
    """
    if not hashed_password:
        return False
    return _password_context(DEFAULT_PASSWORD_ROUNDS).verify(plain_password, hashed_password)


def dummy_verify(rounds: int = DEFAULT_PASSWORD_ROUNDS) -> None:
    """
    Burn the time of one password verification at cost `rounds`.

    WHY: Login for an unknown email must take as long as a wrong password,
    otherwise response timing reveals which emails are registered.
    """
    _password_context(rounds).dummy_verify()


# ============================================================================
# Opaque Tokens
# ============================================================================


def generate_opaque_token() -> str:
    """
    Generate a one-time verification or reset token.

    Returns:
        96 hex characters (48 random bytes from the OS entropy source)
    """
    return secrets.token_hex(OPAQUE_TOKEN_BYTES)


def generate_session_id() -> str:
    """Generate a random session identifier (the JWT `sid` / session `jti`)."""
    return secrets.token_urlsafe(SESSION_ID_BYTES)


# ============================================================================
# Session Tokens
# ============================================================================


def create_session_token(
    user_id: int,
    session_id: str,
    email: str,
    expires_at: datetime,
    settings: Settings,
) -> str:
    """
    Create a signed session token.

    Token claims:
    - sub: user id (string, per RFC 7519)
    - sid: id of the server-side session row
    - email: user's email at login time
    - exp: same instant as the session row's expires_at
    - iat: issued at

    Args:
        user_id: Authenticated user's id
        session_id: Session row identifier
        email: User's email
        expires_at: Session expiry (naive UTC)
        settings: Application settings (JWT_SECRET, JWT_ALGORITHM)

    Returns:
        JWT token string

    Security Notes:
        - Tokens are signed, not encrypted; never put secrets in claims
        - Rotating JWT_SECRET invalidates every outstanding token
    """
    claims = {
        "sub": str(user_id),
        "sid": session_id,
        "email": email,
        "exp": expires_at,
        "iat": utcnow(),
    }

    return jwt.encode(
        claims,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_session_token(token: str, settings: Settings) -> Dict[str, Any]:
    """
    Verify and decode a session token.

    Args:
        token: JWT token string
        settings: Application settings

    Returns:
        Decoded token payload

    Raises:
        SessionTokenExpiredError: If token has expired
        SessionTokenInvalidError: If token is malformed or signature invalid
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )

    except ExpiredSignatureError:
        raise SessionTokenExpiredError()

    except JWTError as e:
        raise SessionTokenInvalidError(error=str(e))
