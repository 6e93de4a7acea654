"""API dependencies for authentication and read caches."""

from __future__ import annotations

from fastapi import Cookie, Depends, Header, Request

from bakumania.cache.ttl_cache import TTLCache
from bakumania.core.exceptions import AuthenticationError, AuthorizationError
from bakumania.core.security import TokenData, decode_access_token, validate_token_not_revoked
from bakumania.repositories import users_orm as users_repo


__all__ = [
    "get_cache",
    "get_current_user",
    "require_admin",
    "require_user",
]


def _extract_token(
    authorization: str | None = Header(default=None),
    session: str | None = Cookie(default=None),
) -> str | None:
    """Extract JWT token from Authorization header or session cookie."""
    # Prefer Authorization header (for API clients)
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token

    # Fall back to session cookie (for browser clients)
    if session:
        return session

    return None


async def get_current_user(
    authorization: str | None = Header(default=None),
    session: str | None = Cookie(default=None),
) -> TokenData | None:
    """
    Get current authenticated user (optional).

    Returns None if not authenticated or token is revoked.
    """
    token = _extract_token(authorization, session)
    if not token:
        return None

    try:
        token_data = decode_access_token(token)
    except AuthenticationError:
        return None

    if not await validate_token_not_revoked(token_data):
        return None
    if await users_repo.get_user(token_data.sub) is None:
        return None
    return token_data


async def require_user(
    authorization: str | None = Header(default=None),
    session: str | None = Cookie(default=None),
) -> TokenData:
    """
    Require authenticated user.

    Raises AuthenticationError if not authenticated or token is revoked.
    """
    token = _extract_token(authorization, session)
    if not token:
        raise AuthenticationError(
            message="Authentication required",
            error_code="MISSING_CREDENTIALS",
        )

    token_data = decode_access_token(token)

    if not await validate_token_not_revoked(token_data):
        raise AuthenticationError(
            message="Token has been revoked",
            error_code="TOKEN_REVOKED",
        )

    if await users_repo.get_user(token_data.sub) is None:
        raise AuthenticationError(
            message="User no longer exists",
            error_code="USER_NOT_FOUND",
        )

    return token_data


async def require_admin(
    user: TokenData = Depends(require_user),
) -> TokenData:
    """
    Require admin user.

    Raises AuthorizationError if not admin.
    """
    if not user.is_admin:
        raise AuthorizationError(
            message="Admin privileges required",
            error_code="ADMIN_REQUIRED",
        )
    return user


def get_cache(name: str):
    """Dependency factory returning the named read cache built by the app factory."""

    def _dependency(request: Request) -> TTLCache:
        return request.app.state.caches[name]

    return _dependency
