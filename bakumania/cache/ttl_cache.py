"""In-process time-boxed read cache.

Entries are populated lazily on a miss and dropped only when their time window
elapses. Writes to the store never invalidate them, so readers can observe data
that is up to ``ttl_seconds`` old.

Usage:
    cache = TTLCache(ttl_seconds=300)
    data = await cache.get_or_load("combined", load_combined)
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any

from bakumania.core.logging import get_logger


logger = get_logger("cache.ttl")

Clock = Callable[[], float]

_MISSING = object()


@dataclass
class _Entry:
    value: Any
    stored_at: float


class TTLCache:
    """Key/value cache whose entries expire a fixed time after being stored."""

    def __init__(self, ttl_seconds: float, clock: Clock = time.monotonic, name: str = "cache"):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._entries: dict[Hashable, _Entry] = {}
        self.hits = 0
        self.misses = 0

    def _is_fresh(self, entry: _Entry, now: float) -> bool:
        return now - entry.stored_at < self.ttl_seconds

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        if not self._is_fresh(entry, self._clock()):
            del self._entries[key]
            return default
        return entry.value

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = _Entry(value=value, stored_at=self._clock())

    def age(self, key: Hashable) -> float | None:
        """Seconds since ``key`` was stored, or None when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if not self._is_fresh(entry, now):
            return None
        return now - entry.stored_at

    async def get_or_load(
        self, key: Hashable, loader: Callable[[], Awaitable[Any]]
    ) -> Any:
        """Return the cached value for ``key`` or await ``loader`` and store it.

        Loader failures propagate and leave nothing cached.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            self.hits += 1
            return value

        self.misses += 1
        value = await loader()
        self.set(key, value)
        logger.debug(f"{self.name}: stored {key!r} for {self.ttl_seconds}s")
        return value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for entry in self._entries.values() if self._is_fresh(entry, now))
