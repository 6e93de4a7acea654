"""Authentication routes: credentials, sessions and email one-time codes."""

from __future__ import annotations

import secrets

from fastapi import APIRouter, Depends, Response, status

from bakumania.cache.token_blacklist import blacklist_token, blacklist_user_tokens
from bakumania.core.config import settings
from bakumania.core.exceptions import AuthenticationError, BadRequestError, ConflictError, NotFoundError
from bakumania.core.logging import get_logger
from bakumania.core.otp import deliver_otp, generate_otp, validate_otp
from bakumania.core.security import (
    TokenData,
    create_access_token,
    hash_password,
    verify_password,
)
from bakumania.api.dependencies import require_user
from bakumania.repositories import users_orm as users_repo
from bakumania.schemas.auth import (
    EmailAvailableResponse,
    EmailRequest,
    LoginRequest,
    LoginResponse,
    OTPSentResponse,
    OTPVerifyRequest,
    OTPVerifyResponse,
    PasswordResetRequest,
    RegisterRequest,
    UserResponse,
)
from bakumania.schemas.common import MessageResponse


router = APIRouter()

logger = get_logger("api.auth")

RESET_SENT_MESSAGE = "If your email is registered, a verification code has been sent"


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key="session",
        value=token,
        httponly=True,
        secure=settings.https_enabled,
        samesite="lax",
        domain=settings.domain,
        max_age=settings.access_token_expire_minutes * 60,
    )


def _is_admin_key(admin_key: str | None) -> bool:
    if not admin_key or not settings.admin_secret_key:
        return False
    return secrets.compare_digest(admin_key, settings.admin_secret_key)


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user",
    responses={409: {"description": "Username already exists"}},
)
async def register(payload: RegisterRequest) -> UserResponse:
    """Create an account. Supplying the admin secret key grants admin rights."""
    if await users_repo.get_user(payload.username) is not None:
        raise ConflictError(message="Username already exists", error_code="USERNAME_TAKEN")

    user = await users_repo.create_user(
        username=payload.username,
        password_hash=hash_password(payload.password),
        is_admin=_is_admin_key(payload.admin_key),
    )
    return UserResponse(id=user.id, username=user.username, is_admin=user.is_admin)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Authenticate user",
    description="Login with username and password to receive an access token.",
    responses={401: {"description": "Invalid credentials"}},
)
async def login(payload: LoginRequest, response: Response) -> LoginResponse:
    """Authenticate user, return an access token and set the session cookie."""
    user = await users_repo.get_user(payload.username)
    if user is None or not verify_password(payload.password, user.password_hash):
        raise AuthenticationError(
            message="Invalid username or password",
            error_code="INVALID_CREDENTIALS",
        )

    access_token = create_access_token(username=user.username, is_admin=user.is_admin)
    set_session_cookie(response, access_token)

    return LoginResponse(
        id=user.id,
        username=user.username,
        is_admin=user.is_admin,
        access_token=access_token,
        token_type="bearer",
    )


@router.post(
    "/logout",
    status_code=204,
    summary="Logout user",
    description="Revoke the current token and clear the session cookie.",
)
async def logout(
    response: Response,
    user: TokenData = Depends(require_user),
) -> None:
    await blacklist_token(user.jti, user.exp)
    response.delete_cookie(key="session", domain=settings.domain, path="/")


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    responses={401: {"description": "Not authenticated"}},
)
async def get_me(user: TokenData = Depends(require_user)) -> UserResponse:
    record = await users_repo.get_user(user.sub)
    if record is None:
        raise NotFoundError(message="User not found")
    return UserResponse(id=record.id, username=record.username, is_admin=record.is_admin)


@router.post(
    "/check-email",
    response_model=EmailAvailableResponse,
    summary="Check whether an email can be registered",
    responses={409: {"description": "Email already registered"}},
)
async def check_email(payload: EmailRequest) -> EmailAvailableResponse:
    if await users_repo.verified_email_taken(payload.email):
        raise ConflictError(
            message="Email already registered. Please use a different email or sign in.",
            error_code="EMAIL_TAKEN",
        )
    return EmailAvailableResponse()


async def _issue_code(user: users_repo.UserRecord) -> None:
    issued = generate_otp()
    await users_repo.set_otp(user.id, issued.code, issued.expires_at)
    await deliver_otp(user.email, issued.code)


@router.post(
    "/send-otp",
    response_model=OTPSentResponse,
    summary="Send a verification code",
    description="Unknown emails get a temporary account that holds the code until verified.",
)
async def send_otp(payload: EmailRequest) -> OTPSentResponse:
    user = await users_repo.get_user_by_email(payload.email)
    if user is None:
        user = await users_repo.create_user(
            username=f"{users_repo.TEMP_USERNAME_PREFIX}{secrets.token_hex(8)}",
            password_hash=None,
            email=payload.email,
        )
    await _issue_code(user)
    return OTPSentResponse(message="OTP sent successfully", user_id=user.id)


@router.put(
    "/send-otp",
    response_model=OTPVerifyResponse,
    summary="Verify a code",
    responses={400: {"description": "Invalid or expired OTP"}},
)
async def verify_otp(payload: OTPVerifyRequest) -> OTPVerifyResponse:
    user = await users_repo.get_user_by_id(payload.user_id)
    if user is None:
        raise NotFoundError(message="User not found")
    if not validate_otp(user.otp_code, user.otp_expires_at, payload.otp):
        raise BadRequestError(message="Invalid or expired OTP", error_code="INVALID_OTP")

    await users_repo.mark_verified(user.id)
    logger.info("Email verified", extra={"user_id": user.id})
    return OTPVerifyResponse(user_id=user.id, is_verified=True)


@router.post(
    "/reset-password",
    response_model=OTPSentResponse,
    summary="Start a password reset",
    description="Always answers the same way so the response does not reveal registered emails.",
)
async def start_password_reset(payload: EmailRequest) -> OTPSentResponse:
    user = await users_repo.get_user_by_email(payload.email)
    if user is not None:
        await _issue_code(user)
    return OTPSentResponse(message=RESET_SENT_MESSAGE)


@router.put(
    "/reset-password",
    response_model=MessageResponse,
    summary="Complete a password reset",
    responses={400: {"description": "Invalid or expired verification code"}},
)
async def complete_password_reset(payload: PasswordResetRequest) -> MessageResponse:
    user = await users_repo.get_user_by_email(payload.email.strip())
    if user is None or not validate_otp(user.otp_code, user.otp_expires_at, payload.otp):
        raise BadRequestError(
            message="Invalid or expired verification code",
            error_code="INVALID_OTP",
        )

    await users_repo.set_password(user.id, hash_password(payload.new_password), clear_otp=True)
    await blacklist_user_tokens(user.username)
    logger.info("Password reset", extra={"user_id": user.id})
    return MessageResponse(message="Password reset successfully")
