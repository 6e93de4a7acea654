"""Security utilities: password hashing and JWT tokens."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from pydantic import BaseModel

from .config import settings
from .exceptions import AuthenticationError


JWT_ALGORITHM = "HS256"
JWT_ISSUER = "bakumania"
JWT_AUDIENCE = "bakumania-api"


class TokenData(BaseModel):
    """Decoded JWT token data."""

    sub: str  # username
    exp: datetime
    iat: datetime
    iss: str
    aud: str
    jti: str  # unique token ID for revocation
    is_admin: bool = False


def hash_password(password: str) -> str:
    """Hash password using bcrypt with salt."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Verify password against bcrypt hash.

    Accounts created through the one-time-code flow have no password yet and
    never verify.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(
    username: str,
    is_admin: bool = False,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed JWT access token."""
    now = datetime.now(timezone.utc)
    expires = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    payload = {
        "sub": username,
        "exp": expires,
        "iat": now,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "jti": secrets.token_urlsafe(16),
        "is_admin": is_admin,
    }

    return jwt.encode(payload, settings.auth_secret, algorithm=JWT_ALGORITHM)


def _claim_time(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromtimestamp(value, tz=timezone.utc)


def decode_access_token(token: str) -> TokenData:
    """Decode and validate JWT access token."""
    try:
        payload = jwt.decode(
            token,
            settings.auth_secret,
            algorithms=[JWT_ALGORITHM],
            issuer=JWT_ISSUER,
            audience=JWT_AUDIENCE,
            options={
                "require": ["exp", "iat", "sub", "iss", "aud", "jti"],
            },
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(message="Token has expired", error_code="TOKEN_EXPIRED")
    except jwt.InvalidTokenError:
        raise AuthenticationError(message="Invalid token", error_code="INVALID_TOKEN")

    return TokenData(
        sub=payload["sub"],
        exp=_claim_time(payload["exp"]),
        iat=_claim_time(payload["iat"]),
        iss=payload["iss"],
        aud=payload["aud"],
        jti=payload["jti"],
        is_admin=payload.get("is_admin", False),
    )


async def validate_token_not_revoked(token_data: TokenData) -> bool:
    """Return False if the token was revoked by logout or a password change."""
    from bakumania.cache.token_blacklist import (
        get_user_token_invalidation_time,
        is_token_blacklisted,
    )

    if await is_token_blacklisted(token_data.jti):
        return False

    invalidation_time = await get_user_token_invalidation_time(token_data.sub)
    if invalidation_time and token_data.iat < invalidation_time:
        return False

    return True
