"""
Errors the auth service reports to its callers.

Every error a handler raises is an AppException subclass. The class decides
the HTTP status; the JSON body is always

    {"error": <class name>, "message": ..., "status_code": ..., "details": ...}

Taxonomy:
    ValidationError (400)             malformed input, bad one-time token
    ResourceAlreadyExistsError (409)  email already registered
    AuthenticationError (401)         bad credentials or session
    AuthorizationError (403)          correct password, unverified email
    ResourceNotFoundError (404)       unknown route or method
    RateLimitExceeded (429)           caller over its request budget
    anything else (500)               rendered by the generic handler
"""

from typing import Any, Dict, Optional

# Context keys that identify a person or grant access; never echoed back
_REDACTED_CONTEXT = frozenset({"password", "token", "secret", "key", "api_key", "email", "user_id"})


class AppException(Exception):
    """
    Base class for errors with a status code and a caller-safe message.

    Keyword arguments become `context`: they are logged by the handler for
    5xx errors and returned under `details`, minus the redacted keys.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Response body for this error."""
        details = {k: v for k, v in self.context.items() if k.lower() not in _REDACTED_CONTEXT}
        return {
            "error": type(self).__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": details or None,
        }


# ============================================================================
# Authentication & Authorization Exceptions (OWASP A07)
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when authentication fails.

    WHY: Bad credentials and bad/expired/revoked sessions share one status
    so callers cannot tell which step of authentication failed.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    default_message = "Unauthorized"


class SessionTokenExpiredError(AuthenticationError):
    """
    Raised when a signed session token is past its `exp` claim.

    HTTP Status: 401 Unauthorized
    """

    default_message = "Session has expired"


class SessionTokenInvalidError(AuthenticationError):
    """
    Raised when a session token is malformed or its signature does not verify.

    HTTP Status: 401 Unauthorized
    """

    default_message = "Session token is invalid"


class AuthorizationError(AppException):
    """
    Raised when the caller is identified but may not proceed.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "You do not have permission to perform this action"


class EmailNotVerifiedError(AuthorizationError):
    """
    Raised on login with a correct password for an unverified account.

    WHY: Distinct from AuthenticationError so the frontend can offer
    "resend verification email" instead of "wrong password".

    HTTP Status: 403 Forbidden
    """

    default_message = "Please verify your email before logging in"


# ============================================================================
# Validation & Input Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


class OneTimeTokenError(ValidationError):
    """
    Base for verification/reset token failures.

    WHY: Email verification and password reset share the same
    Invalid / AlreadyUsed / Expired taxonomy.

    HTTP Status: 400 Bad Request
    """

    default_message = "Token is not valid"


class InvalidTokenError(OneTimeTokenError):
    """Raised when no token with the given value exists."""

    default_message = "Invalid token"


class TokenAlreadyUsedError(OneTimeTokenError):
    """
    Raised when the token was consumed or superseded by a newer one.

    WHY: Replaying a verification or reset link must never succeed twice.
    """

    default_message = "Token has already been used"


class TokenExpiredError(OneTimeTokenError):
    """Raised when the token is past its expiry timestamp."""

    default_message = "Token has expired"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource or route doesn't exist.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Not found"


class ResourceAlreadyExistsError(AppException):
    """
    Raised when attempting to create a resource that already exists.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Resource already exists"


class EmailAlreadyRegisteredError(ResourceAlreadyExistsError):
    """
    Raised on signup with an email that already has an account.

    WHY: Signup is the one flow that reveals existence; the message says
    nothing beyond "already registered".
    """

    default_message = "This email is already registered"


# ============================================================================
# External Service Exceptions
# ============================================================================


class ExternalServiceError(AppException):
    """
    Base exception for external service failures.

    HTTP Status: 502 Bad Gateway
    """

    status_code = 502
    default_message = "External service error"


class EmailServiceError(ExternalServiceError):
    """
    Raised when an email cannot be built (e.g. an unknown template).
    """

    default_message = "Email service error"


# ============================================================================
# Rate Limiting Exceptions
# ============================================================================


class RateLimitExceeded(AppException):
    """
    Returned by the rate limit middleware; `retry_after` seconds go in details.

    HTTP Status: 429 Too Many Requests
    """

    status_code = 429
    default_message = "Too many requests"
