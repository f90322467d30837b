"""
Pydantic schemas for authentication endpoints.

WHY: Schemas define request/response contracts, providing:
1. Automatic validation of request data (missing fields become 400)
2. API documentation (OpenAPI/Swagger)
3. A sanitized user shape that can never include the password hash
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 100


class SignupRequest(BaseModel):
    """
    Signup request schema.

    WHY: All three fields are required and non-empty. Password length
    matches the rule the calculator's signup form enforces.
    """

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LENGTH,
        max_length=PASSWORD_MAX_LENGTH,
        description="Password (6-100 characters)",
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Ana",
                "email": "ana@example.com",
                "password": "secret1",
            }
        }


class LoginRequest(BaseModel):
    """
    Login request schema.

    WHY: Only presence is checked for the password; length rules apply when
    a password is set, not when it is tried.
    """

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, max_length=1024, description="User's password")

    class Config:
        json_schema_extra = {
            "example": {
                "email": "ana@example.com",
                "password": "secret1",
            }
        }


class EmailRequest(BaseModel):
    """Body of resend-verification and forgot-password."""

    email: EmailStr = Field(..., description="Email address of the account")


class ResetPasswordRequest(BaseModel):
    """
    Password reset request schema.

    WHY: The token comes from the emailed link; the new password follows
    the signup length rule.
    """

    token: str = Field(..., min_length=1, max_length=255, description="Reset token from email")
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LENGTH,
        max_length=PASSWORD_MAX_LENGTH,
        description="New password (6-100 characters)",
    )


class MessageResponse(BaseModel):
    """Generic confirmation message."""

    message: str = Field(..., description="Human-readable result")


class UserResponse(BaseModel):
    """
    User response schema.

    WHY: Returns user data without sensitive information (no password hash).
    """

    id: int = Field(..., description="User ID")
    name: str = Field(..., description="User's display name")
    email: str = Field(..., description="User's email address (lowercase)")
    email_verified: bool = Field(..., description="Whether the email was verified")
    created_at: datetime = Field(..., description="Account creation timestamp (UTC)")

    class Config:
        from_attributes = True  # Enable ORM mode for SQLAlchemy models
        json_schema_extra = {
            "example": {
                "id": 1,
                "name": "Ana",
                "email": "ana@example.com",
                "email_verified": True,
                "created_at": "2026-01-12T10:30:00",
            }
        }


class LoginResponse(BaseModel):
    """Session token plus the signed-in user."""

    user: UserResponse
    token: str = Field(..., description="Signed session token for the Authorization header")
    expires_at: datetime = Field(..., description="Session expiry (UTC)")


class MeResponse(BaseModel):
    user: UserResponse


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
