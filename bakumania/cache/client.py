"""Valkey client for token revocation."""

from __future__ import annotations

import asyncio

from redis.asyncio import Redis
from redis.exceptions import RedisError

from bakumania.core.config import settings
from bakumania.core.logging import get_logger


logger = get_logger("cache.client")

_client: Redis | None = None


async def get_valkey_client() -> Redis:
    """Return the shared client, creating it on first use."""
    global _client
    if _client is None:
        _client = Redis.from_url(
            settings.valkey_url,
            max_connections=settings.valkey_max_connections,
            decode_responses=True,
            socket_timeout=2.0,
            socket_connect_timeout=2.0,
        )
        logger.info("Valkey client created", extra={"url": settings.valkey_url})
    return _client


async def close_valkey_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("Valkey client closed")


async def valkey_healthcheck() -> bool:
    """Ping Valkey; any failure reports unhealthy."""
    try:
        client = await get_valkey_client()
        result = await asyncio.wait_for(client.ping(), timeout=2.0)
        return result is True or result == "PONG"
    except (asyncio.TimeoutError, OSError, RedisError) as e:
        logger.warning(f"Valkey healthcheck failed: {e}")
        return False
