"""Auth and account schemas."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from bakumania.core.config import settings


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_password(v: str) -> str:
    if len(v) < settings.password_min_length:
        raise ValueError(f"Password must be at least {settings.password_min_length} characters")
    return v


def _check_email(v: str) -> str:
    v = v.strip()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Invalid email address")
    return v


class RegisterRequest(BaseModel):
    """Registration request. A matching admin key grants admin rights."""

    username: str = Field(..., min_length=3, max_length=50, examples=["dan_kuso"])
    password: str = Field(..., min_length=1, max_length=128)
    admin_key: str | None = Field(default=None, description="Admin secret key (optional)")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Validate and sanitize username."""
        v = v.strip()
        if not re.match(r"^[A-Za-z0-9_.-]+$", v):
            raise ValueError(
                "Username can only contain letters, numbers, dots, underscores, and hyphens"
            )
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)


class LoginRequest(BaseModel):
    """Login request schema."""

    username: str = Field(..., min_length=1, max_length=255, examples=["dan_kuso"])
    password: str = Field(..., min_length=1, max_length=128)


class LoginResponse(BaseModel):
    """Login response schema."""

    id: int
    username: str = Field(..., description="Authenticated username")
    is_admin: bool = Field(..., description="Whether user is admin")
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class UserResponse(BaseModel):
    """Current user response schema."""

    id: int
    username: str = Field(..., description="Username")
    is_admin: bool = Field(..., description="Whether user is admin")


class EmailRequest(BaseModel):
    email: str = Field(..., max_length=255, examples=["dan@example.com"])

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)


class EmailAvailableResponse(BaseModel):
    available: bool = True
    message: str = "Email is available for registration"


class OTPSentResponse(BaseModel):
    success: bool = True
    message: str
    user_id: int | None = Field(default=None, description="Account the code was issued for")


class OTPVerifyRequest(BaseModel):
    user_id: int = Field(..., ge=1)
    otp: str = Field(..., min_length=1, max_length=6)


class OTPVerifyResponse(BaseModel):
    success: bool = True
    message: str = "OTP verified successfully"
    user_id: int
    is_verified: bool


class PasswordResetRequest(BaseModel):
    """Complete a password reset with the emailed code."""

    email: str = Field(..., max_length=255)
    otp: str = Field(..., min_length=1, max_length=6)
    new_password: str = Field(..., min_length=1, max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _check_password(v)


class PasswordChangeRequest(BaseModel):
    """Password change request schema."""

    current_password: str = Field(..., min_length=1, max_length=128, description="Current password")
    new_password: str = Field(..., min_length=1, max_length=128, description="New password")

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _check_password(v)


class ProfileUpdateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Display name")


class AccountResponse(BaseModel):
    """Account without secrets."""

    id: int
    username: str
    email: str | None = None
    name: str | None = None
    image: str | None = None
    provider: str | None = None
    is_admin: bool = False
    is_verified: bool = False
    subscription_plan: str = "free"
    subscription_expiry: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AdminUserUpdateRequest(BaseModel):
    """Admin edits of a user's role and subscription."""

    user_id: int = Field(..., ge=1)
    is_admin: bool | None = None
    subscription_plan: str | None = Field(default=None, examples=["pro"])
    subscription_expiry: datetime | None = None

    @field_validator("subscription_plan")
    @classmethod
    def validate_plan(cls, v: str | None) -> str | None:
        if v is not None and v not in ("free", "pro", "elite"):
            raise ValueError("Invalid subscription plan. Must be one of: free, pro, elite")
        return v
