"""
Authentication API endpoints.

WHY: These endpoints provide the authentication flow:
1. Signup / verify-email / resend-verification - Create and confirm accounts
2. Login - Authenticate and open a revocable session
3. Forgot-password / reset-password - Recover an account by email
4. Me / logout - Use and close a session

Security:
- Rate limiting applied to every route via RateLimitMiddleware
- Passwords are compared using constant-time comparison (bcrypt)
- Generic error messages prevent user enumeration attacks

Routes only translate HTTP to AuthService calls.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from auth_service.core.deps import (
    CurrentSession,
    get_auth_service,
    get_client_ip,
    get_current_session,
)
from auth_service.schemas.auth import (
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
    UserResponse,
)
from auth_service.services.auth import (
    AuthService,
    FORGOT_PASSWORD_MESSAGE,
    LOGOUT_MESSAGE,
    RESEND_VERIFICATION_MESSAGE,
    RESET_PASSWORD_MESSAGE,
    SIGNUP_MESSAGE,
    VERIFY_EMAIL_MESSAGE,
)


router = APIRouter(tags=["authentication"])


@router.post(
    "/signup",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create account",
    description="Create an unverified account and email a verification link",
)
async def signup(
    request: SignupRequest,
    service: AuthService = Depends(get_auth_service),
    ip_address: Optional[str] = Depends(get_client_ip),
) -> MessageResponse:
    """
    Create an account.

    Raises:
        EmailAlreadyRegisteredError (409): If the email already has an account
    """
    await service.signup(
        name=request.name,
        email=request.email,
        password=request.password,
        ip_address=ip_address,
    )
    # WHY: The verification token is only ever delivered by email
    return MessageResponse(message=SIGNUP_MESSAGE)


@router.get(
    "/verify-email",
    response_model=MessageResponse,
    summary="Verify email address",
    description="Consume the token from the verification email",
)
async def verify_email(
    token: str = Query(..., min_length=1, max_length=255),
    service: AuthService = Depends(get_auth_service),
    ip_address: Optional[str] = Depends(get_client_ip),
) -> MessageResponse:
    """
    Verify an email address.

    Raises:
        InvalidTokenError / TokenAlreadyUsedError / TokenExpiredError (400)
    """
    await service.verify_email(token, ip_address=ip_address)
    return MessageResponse(message=VERIFY_EMAIL_MESSAGE)


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    summary="Resend verification email",
)
async def resend_verification(
    request: EmailRequest,
    service: AuthService = Depends(get_auth_service),
    ip_address: Optional[str] = Depends(get_client_ip),
) -> MessageResponse:
    """
    Resend the verification email.

    Security:
    - Always returns the same message to prevent user enumeration
    """
    await service.resend_verification(request.email, ip_address=ip_address)
    return MessageResponse(message=RESEND_VERIFICATION_MESSAGE)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login user",
    description="Authenticate with email and password, returns a session token",
)
async def login(
    credentials: LoginRequest,
    service: AuthService = Depends(get_auth_service),
    ip_address: Optional[str] = Depends(get_client_ip),
) -> LoginResponse:
    """
    Authenticate user and open a session.

    Raises:
        AuthenticationError (401): If credentials are invalid
        EmailNotVerifiedError (403): If the email is not verified yet
    """
    result = await service.login(
        email=credentials.email,
        password=credentials.password,
        ip_address=ip_address,
    )
    return LoginResponse(
        user=UserResponse.model_validate(result.user),
        token=result.token,
        expires_at=result.expires_at,
    )


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request password reset",
    description="Send password reset link to email address",
)
async def forgot_password(
    request: EmailRequest,
    service: AuthService = Depends(get_auth_service),
    ip_address: Optional[str] = Depends(get_client_ip),
) -> MessageResponse:
    """
    Request password reset email.

    Security:
    - Always returns success to prevent user enumeration
    - Previous reset tokens are invalidated
    """
    await service.forgot_password(request.email, ip_address=ip_address)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset password with token",
    description="Reset password using token from email",
)
async def reset_password(
    request: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
    ip_address: Optional[str] = Depends(get_client_ip),
) -> MessageResponse:
    """
    Reset password using token from email.

    Security:
    - Token can only be used once
    - All existing sessions of the user are revoked
    - User is notified of the change

    Raises:
        InvalidTokenError / TokenAlreadyUsedError / TokenExpiredError (400)
    """
    await service.reset_password(request.token, request.password, ip_address=ip_address)
    return MessageResponse(message=RESET_PASSWORD_MESSAGE)


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Get current user",
)
async def me(
    current: CurrentSession = Depends(get_current_session),
    service: AuthService = Depends(get_auth_service),
) -> MeResponse:
    """Return the user of the calling session."""
    user = await service.me(current.user_id)
    return MeResponse(user=UserResponse.model_validate(user))


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout user",
    description="Revoke the calling session; other sessions stay valid",
)
async def logout(
    current: CurrentSession = Depends(get_current_session),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Revoke the calling session."""
    await service.logout(current.sid)
    return MessageResponse(message=LOGOUT_MESSAGE)
