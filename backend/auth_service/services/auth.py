"""
Authentication flows.

WHAT: Signup, email verification, login, password reset, me and logout,
composed from the DAOs, the token helpers and the email service.

WHY: Routes only translate HTTP to these calls, so the rules below are
testable without a client and live in one place:
- Login never tells "no such user" apart from "wrong password"
- Forgot-password and resend-verification answer identically whether or
  not the email exists
- Issuing or consuming a one-time token invalidates the user's other
  unused tokens of that type
- A password reset revokes every session of the user
- Email failures never change the outcome of a flow
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.core.auth import (
    create_session_token,
    dummy_verify,
    generate_session_id,
    hash_password,
    utcnow,
    verify_password,
)
from auth_service.core.config import Settings
from auth_service.core.exceptions import (
    AuthenticationError,
    EmailNotVerifiedError,
    InvalidTokenError,
    TokenAlreadyUsedError,
    TokenExpiredError,
)
from auth_service.dao.session import SessionDAO
from auth_service.dao.user import UserDAO, normalize_email
from auth_service.dao.verification_token import VerificationTokenDAO
from auth_service.models.user import User
from auth_service.models.verification_token import TokenType, VerificationToken
from auth_service.services.email import EmailService

logger = logging.getLogger(__name__)


SIGNUP_MESSAGE = "Account created. Please check your email to verify your account."
VERIFY_EMAIL_MESSAGE = "Email verified successfully. You can now log in."
RESEND_VERIFICATION_MESSAGE = (
    "If an account exists and is not yet verified, a new verification email has been sent."
)
FORGOT_PASSWORD_MESSAGE = (
    "If an account exists with this email, you will receive a password reset link."
)
RESET_PASSWORD_MESSAGE = "Password reset successfully. You can now log in with your new password."
LOGOUT_MESSAGE = "Logged out successfully"
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


@dataclass
class LoginResult:
    """A freshly created session for a user."""

    user: User
    token: str
    expires_at: datetime


class AuthService:
    """
    Authentication flows over one database session.

    Args:
        db: Request-scoped database session
        settings: Application settings (TTLs, hash cost, signing secret)
        email_service: Best-effort email sender
    """

    def __init__(self, db: AsyncSession, settings: Settings, email_service: EmailService):
        self.db = db
        self.settings = settings
        self.email_service = email_service
        self.users = UserDAO(db)
        self.tokens = VerificationTokenDAO(db)
        self.sessions = SessionDAO(db)

    # ------------------------------------------------------------------
    # One-time tokens
    # ------------------------------------------------------------------

    async def _issue_token(
        self,
        user_id: int,
        token_type: TokenType,
        ttl_minutes: int,
        ip_address: Optional[str],
    ) -> VerificationToken:
        # At most one active token per user and type
        await self.tokens.invalidate_previous_tokens(user_id, token_type)
        return await self.tokens.create_token(
            user_id=user_id,
            token_type=token_type,
            expires_at=utcnow() + timedelta(minutes=ttl_minutes),
            ip_address=ip_address,
        )

    async def _consume_token(
        self,
        token: str,
        token_type: TokenType,
        ip_address: Optional[str],
    ) -> VerificationToken:
        """
        Check and consume a one-time token.

        Order: unknown -> InvalidToken, used (or superseded) -> AlreadyUsed,
        `now >= expires_at` -> Expired. Consumption is a conditional update,
        so of two concurrent requests with the same token only one passes.

        Raises:
            InvalidTokenError, TokenAlreadyUsedError, TokenExpiredError
        """
        record = await self.tokens.get_by_token(token, token_type)
        if record is None:
            raise InvalidTokenError()

        if record.is_used:
            raise TokenAlreadyUsedError()

        if record.is_expired(utcnow()):
            raise TokenExpiredError()

        await self.tokens.mark_as_used(record.id, ip_address=ip_address)
        await self.tokens.invalidate_previous_tokens(record.user_id, token_type)
        return record

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    async def signup(
        self,
        name: str,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
    ) -> User:
        """
        Create an unverified account and email a verification link.

        Raises:
            EmailAlreadyRegisteredError: If the email already has an account
        """
        user = await self.users.create_user(
            email=normalize_email(email),
            hashed_password=hash_password(password, rounds=self.settings.PASSWORD_HASH_ROUNDS),
            name=name,
        )

        token = await self._issue_token(
            user.id,
            TokenType.EMAIL_VERIFICATION,
            self.settings.EMAIL_VERIFICATION_TTL_MINUTES,
            ip_address,
        )

        logger.info("User signed up", extra={"user_id": user.id})

        # Sent before get_db commits; a failed commit leaves a link to a token
        # that was never stored, and the user falls back to resend.
        await self.email_service.send_verification_email(
            to_email=user.email,
            user_name=user.name,
            verification_token=token.token,
        )
        return user

    async def verify_email(self, token: str, ip_address: Optional[str] = None) -> User:
        """
        Consume a verification token and mark the user's email verified.

        Raises:
            InvalidTokenError, TokenAlreadyUsedError, TokenExpiredError
        """
        record = await self._consume_token(token, TokenType.EMAIL_VERIFICATION, ip_address)

        user = await self.users.mark_email_verified(record.user_id)
        if user is None:
            # FK cascade makes this unreachable unless the row vanished mid-request
            raise InvalidTokenError()

        logger.info("Email verified", extra={"user_id": user.id})
        return user

    async def resend_verification(self, email: str, ip_address: Optional[str] = None) -> None:
        """
        Issue a fresh verification token for an existing unverified user.

        Does nothing, silently, for unknown or already verified emails.
        """
        user = await self.users.get_by_email(email)
        if user is None or user.email_verified:
            logger.info(
                "Verification resend skipped",
                extra={"reason": "unknown" if user is None else "already_verified"},
            )
            return

        token = await self._issue_token(
            user.id,
            TokenType.EMAIL_VERIFICATION,
            self.settings.EMAIL_VERIFICATION_TTL_MINUTES,
            ip_address,
        )

        await self.email_service.send_verification_email(
            to_email=user.email,
            user_name=user.name,
            verification_token=token.token,
        )

    async def login(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
    ) -> LoginResult:
        """
        Check credentials and open a new session.

        Raises:
            AuthenticationError: Unknown email or wrong password (same message)
            EmailNotVerifiedError: Correct password, email not verified yet
        """
        user = await self.users.get_by_email(email)

        if user is None:
            # Same cost as a real password check
            dummy_verify(rounds=self.settings.PASSWORD_HASH_ROUNDS)
            logger.info("Login failed", extra={"reason": "unknown_email"})
            raise AuthenticationError(message=INVALID_CREDENTIALS_MESSAGE)

        if not verify_password(password, user.hashed_password):
            logger.info("Login failed", extra={"reason": "wrong_password", "user_id": user.id})
            raise AuthenticationError(message=INVALID_CREDENTIALS_MESSAGE)

        if not user.email_verified:
            logger.info("Login refused", extra={"reason": "email_not_verified", "user_id": user.id})
            raise EmailNotVerifiedError()

        expires_at = utcnow() + timedelta(minutes=self.settings.SESSION_TTL_MINUTES)
        session = await self.sessions.create_session(
            user_id=user.id,
            jti=generate_session_id(),
            expires_at=expires_at,
            ip_address=ip_address,
        )

        token = create_session_token(
            user_id=user.id,
            session_id=session.jti,
            email=user.email,
            expires_at=expires_at,
            settings=self.settings,
        )

        logger.info("Login succeeded", extra={"user_id": user.id})
        return LoginResult(user=user, token=token, expires_at=expires_at)

    async def forgot_password(self, email: str, ip_address: Optional[str] = None) -> None:
        """
        Issue a password reset token for an existing user.

        Does nothing, silently, for unknown emails.
        """
        user = await self.users.get_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return

        token = await self._issue_token(
            user.id,
            TokenType.PASSWORD_RESET,
            self.settings.PASSWORD_RESET_TTL_MINUTES,
            ip_address,
        )

        logger.info("Password reset requested", extra={"user_id": user.id})

        # Sent before commit, as in signup
        await self.email_service.send_password_reset_email(
            to_email=user.email,
            user_name=user.name,
            reset_token=token.token,
        )

    async def reset_password(
        self,
        token: str,
        password: str,
        ip_address: Optional[str] = None,
    ) -> User:
        """
        Consume a reset token, set the new password and revoke all sessions.

        Raises:
            InvalidTokenError, TokenAlreadyUsedError, TokenExpiredError
        """
        record = await self._consume_token(token, TokenType.PASSWORD_RESET, ip_address)

        user = await self.users.update_password(
            record.user_id,
            hash_password(password, rounds=self.settings.PASSWORD_HASH_ROUNDS),
        )
        if user is None:
            raise InvalidTokenError()

        revoked = await self.sessions.revoke_all_for_user(user.id)
        logger.info(
            "Password reset completed",
            extra={"user_id": user.id, "sessions_revoked": revoked},
        )

        await self.email_service.send_password_changed_email(
            to_email=user.email,
            user_name=user.name,
        )
        return user

    async def me(self, user_id: int) -> User:
        """
        Load the authenticated user.

        Raises:
            AuthenticationError: If the user no longer exists
        """
        user = await self.users.get(user_id)
        if user is None:
            raise AuthenticationError()
        return user

    async def logout(self, sid: str) -> None:
        """Revoke the calling session only."""
        await self.sessions.revoke(sid)
        logger.info("Logged out", extra={"sid": sid})
