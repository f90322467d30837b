"""
FastAPI dependencies for authentication and service wiring.

WHY: Dependencies provide reusable authentication logic and hand each
route the per-application objects (settings, email service) stored on
app.state by the app factory, so nothing is read from module globals.
"""

import ipaddress
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.core.config import Settings
from auth_service.core.exceptions import AuthenticationError
from auth_service.dao.session import SessionDAO
from auth_service.db.session import get_db
from auth_service.middleware.rate_limiter import get_caller_key
from auth_service.services.auth import AuthService
from auth_service.services.email import EmailService
from auth_service.services.session_auth import validate_session

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was created with."""
    return request.app.state.settings


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


def get_client_ip(request: Request) -> Optional[str]:
    """
    Caller address recorded on tokens and sessions.

    Same source as the rate-limit key, but only a parseable IPv4/IPv6
    address is stored; anything else (including "unknown") becomes None.
    """
    key = get_caller_key(request)
    try:
        return str(ipaddress.ip_address(key))
    except ValueError:
        return None


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    email_service: EmailService = Depends(get_email_service),
) -> AuthService:
    return AuthService(db=db, settings=settings, email_service=email_service)


@dataclass
class CurrentSession:
    """Authenticated caller: user id plus the session the token names."""

    user_id: int
    sid: str


async def get_current_session(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> CurrentSession:
    """
    Authenticate the request from its Authorization header.

    WHY: This dependency:
    1. Reads the raw `Authorization: Bearer <token>` header
    2. Verifies token signature and expiration
    3. Checks the session row is live and owned by the token's subject

    Any failure becomes the same 401 so callers cannot tell which check
    failed; the reason is only logged.

    Usage:
        @router.get("/me")
        async def me(current: CurrentSession = Depends(get_current_session)):
            ...

    Raises:
        AuthenticationError: If the session is not valid
    """
    result = await validate_session(
        request.headers.get("Authorization"),
        SessionDAO(db),
        settings,
    )

    if not result.valid:
        logger.info(
            "Session rejected",
            extra={"reason": result.reason.value, "path": request.url.path},
        )
        raise AuthenticationError()

    return CurrentSession(user_id=result.user_id, sid=result.sid)
