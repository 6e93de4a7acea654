"""Caching: in-process read caches and the Valkey client."""

from .client import (
    close_valkey_client,
    get_valkey_client,
    valkey_healthcheck,
)
from .ttl_cache import TTLCache


__all__ = [
    "TTLCache",
    "close_valkey_client",
    "get_valkey_client",
    "valkey_healthcheck",
]
