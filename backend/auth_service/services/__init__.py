"""
Services package.

WHY: Services hold the business logic the routes call into, keeping
routes thin and the flows testable without HTTP.
"""

from auth_service.services.auth import AuthService, LoginResult
from auth_service.services.email import (
    DisabledEmailProvider,
    EmailMessage,
    EmailProvider,
    EmailResult,
    EmailService,
    EmailType,
    ResendProvider,
    build_email_service,
)
from auth_service.services.email_templates import EmailTemplates
from auth_service.services.session_auth import (
    InvalidReason,
    SessionValidation,
    validate_session,
)

__all__ = [
    "AuthService",
    "LoginResult",
    "DisabledEmailProvider",
    "EmailMessage",
    "EmailProvider",
    "EmailResult",
    "EmailService",
    "EmailType",
    "ResendProvider",
    "build_email_service",
    "EmailTemplates",
    "InvalidReason",
    "SessionValidation",
    "validate_session",
]
