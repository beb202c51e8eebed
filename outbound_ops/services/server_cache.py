"""Process-wide keyed TTL store used for lookups and IP rate-limit counters."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")

Clock = Callable[[], float]


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class CacheEntry:
    value: Any
    expires_at_ms: float


class ServerCache:
    """In-memory cache with per-entry TTLs.

    When the entry count exceeds ``max_entries`` the whole cache is cleared;
    there is no LRU ordering. A non-positive ``max_entries`` disables the cap.
    """

    def __init__(self, *, max_entries: int = 500, clock: Clock = _monotonic_ms) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._max_entries = max_entries
        self._clock = clock

    def now_ms(self) -> float:
        return self._clock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at_ms <= self._clock():
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl_ms: float) -> None:
        if not math.isfinite(ttl_ms) or ttl_ms <= 0:
            return
        self._entries[key] = CacheEntry(value=value, expires_at_ms=self._clock() + ttl_ms)
        self.prune()

    def prune(self) -> None:
        if self._max_entries <= 0:
            return
        if len(self._entries) > self._max_entries:
            self._entries.clear()

    async def with_cache(self, key: str, ttl_ms: float, factory: Callable[[], Awaitable[T]]) -> T:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = await factory()
        self.set(key, value, ttl_ms)
        return value

    def invalidate(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``; an empty prefix is a no-op."""

        if not prefix:
            return 0
        stale = [key for key in self._entries if key.startswith(prefix)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
