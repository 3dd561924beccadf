"""
TTL cache for quotes fetched from the upstream market data API.

Entries are not dropped when they expire: the quote provider falls back
to the last known value when the upstream is throttled or down, so an
expired entry is only replaced by a newer one or evicted when the cache
is full.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CacheEntry:
    value: Any
    stored_at: float
    expires_at: float

    @property
    def is_expired(self) -> bool:
        return time.monotonic() > self.expires_at


class InMemoryCache:
    """
    Process-local key/value cache with per-entry TTL.

    Holds at most max_entries keys; when full, the oldest stored entry
    makes room for the new one.
    """

    def __init__(self, default_ttl: int = 60, max_entries: int = 1024):
        self._entries: dict[str, CacheEntry] = {}
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._lock = asyncio.Lock()
        self._stats = {"hits": 0, "misses": 0, "stale_hits": 0, "evictions": 0}

    async def get(self, key: str) -> Any | None:
        """Fresh value for key, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired:
            self._stats["misses"] += 1
            return None
        self._stats["hits"] += 1
        return entry.value

    async def get_stale(self, key: str) -> Any | None:
        """Last stored value for key regardless of TTL."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired:
            self._stats["stale_hits"] += 1
            logger.debug(f"Serving stale cache entry: {key}")
        return entry.value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        now = time.monotonic()
        lifetime = self._default_ttl if ttl is None else ttl
        async with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_entries:
                oldest = min(self._entries, key=lambda k: self._entries[k].stored_at)
                del self._entries[oldest]
                self._stats["evictions"] += 1
            self._entries[key] = CacheEntry(value=value, stored_at=now, expires_at=now + lifetime)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    @property
    def size(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict[str, Any]:
        return {
            **self._stats,
            "size": self.size,
            "max_entries": self._max_entries,
            "default_ttl": self._default_ttl,
        }
