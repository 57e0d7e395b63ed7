"""
Short-lived read-through cache for upstream listings.

Keys are strings such as ``pm:search:<query>`` or ``kalshi:events``. Each
entry carries its own TTL, so per-query searches and bulk listings can share
one bounded ``cachetools.TLRUCache``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

from cachetools import TLRUCache

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAXSIZE = 512

_MISSING = object()


def _entry_expiry(_key: str, entry: tuple[Any, float], now: float) -> float:
    return now + entry[1]


class ListingCache:
    """Bounded per-key TTL cache with a single-flight ``get_or_fill``."""

    def __init__(self, maxsize: int = DEFAULT_MAXSIZE, clock: Callable[[], float] = time.monotonic):
        self._entries: TLRUCache[str, tuple[Any, float]] = TLRUCache(
            maxsize=maxsize, ttu=_entry_expiry, timer=clock,
        )
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiting: dict[str, int] = {}

    def __len__(self) -> int:
        self._entries.expire()
        return len(self._entries)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for ``key``, or ``default`` if missing/expired."""
        entry = self._entries.get(key)
        return default if entry is None else entry[0]

    def set(self, key: str, value: Any, ttl: float) -> None:
        self._entries[key] = (value, ttl)

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_fill(self, key: str, ttl: float, producer: Callable[[], Awaitable[T]]) -> T:
        """
        Return the cached value or await ``producer`` and cache its result.

        Concurrent callers for the same key share one fill. Exceptions from
        ``producer`` propagate and nothing is cached.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiting[key] = self._waiting.get(key, 0) + 1
        try:
            async with lock:
                # Another caller may have filled it while we waited
                value = self.get(key, _MISSING)
                if value is not _MISSING:
                    return value
                logger.debug("Cache miss: %s", key)
                value = await producer()
                self.set(key, value, ttl)
                return value
        finally:
            self._waiting[key] -= 1
            if not self._waiting[key]:
                del self._waiting[key]
                del self._locks[key]

    @property
    def pending_keys(self) -> set[str]:
        """Keys with a fill in flight or callers waiting on one."""
        return set(self._locks)
