"""JWT revocation stored in Valkey.

A token is revoked on logout (by ``jti``). A password change or reset revokes
every token the user was issued before that moment. Keys expire together with
the longest-lived token they can affect.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from redis.exceptions import RedisError

from bakumania.core.config import settings
from bakumania.core.logging import get_logger

from .client import get_valkey_client


logger = get_logger("cache.token_blacklist")

BLACKLIST_PREFIX = "bakumania:token_blacklist"

# Connection failures surface as RedisError or OSError depending on the stage.
_VALKEY_ERRORS = (RedisError, OSError)


async def blacklist_token(jti: str, exp: datetime) -> bool:
    """Revoke a single token until its natural expiry."""
    now = datetime.now(timezone.utc)
    ttl_seconds = int((exp - now).total_seconds())
    if ttl_seconds <= 0:
        return True

    try:
        client = await get_valkey_client()
        await client.set(f"{BLACKLIST_PREFIX}:{jti}", "revoked", ex=ttl_seconds)
    except _VALKEY_ERRORS as e:
        logger.error(f"Failed to blacklist token: {e}")
        return False

    logger.info(f"Token blacklisted: {jti[:8]}... (expires in {ttl_seconds}s)")
    return True


async def is_token_blacklisted(jti: str) -> bool:
    """Check a token id; fails open when Valkey is unreachable."""
    try:
        client = await get_valkey_client()
        return bool(await client.exists(f"{BLACKLIST_PREFIX}:{jti}"))
    except _VALKEY_ERRORS as e:
        logger.error(f"Failed to check token blacklist: {e}")
        return False


async def blacklist_user_tokens(
    username: str, before: Optional[datetime] = None
) -> bool:
    """Revoke all tokens of ``username`` issued before ``before`` (default: now).

    JWT ``iat`` claims have whole-second precision, so the cut-off is truncated
    to the second.
    """
    timestamp = (before or datetime.now(timezone.utc)).replace(microsecond=0)
    try:
        client = await get_valkey_client()
        await client.set(
            f"{BLACKLIST_PREFIX}:user:{username}",
            timestamp.isoformat(),
            ex=settings.access_token_expire_minutes * 60,
        )
    except _VALKEY_ERRORS as e:
        logger.error(f"Failed to blacklist user tokens: {e}")
        return False

    logger.info(
        f"Tokens for user '{username}' issued before {timestamp.isoformat()} are now invalid"
    )
    return True


async def get_user_token_invalidation_time(username: str) -> Optional[datetime]:
    """Return the cut-off before which the user's tokens are invalid, if any."""
    try:
        client = await get_valkey_client()
        result = await client.get(f"{BLACKLIST_PREFIX}:user:{username}")
    except _VALKEY_ERRORS as e:
        logger.error(f"Failed to get user token invalidation time: {e}")
        return None

    if result:
        return datetime.fromisoformat(result)
    return None
