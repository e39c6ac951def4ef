"""Version-tagged in-process cache for computed rollups.

Keys carry the graph, metrics and overlap versions the value was computed
from. Writers bump those versions, so a stale entry is never looked up again
and simply ages out of the LRU order; nothing has to be invalidated by hand.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Hashable, TypeVar

from reachgraph.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CacheStats:
    """Hit/miss counters for a cache."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


class VersionedCache:
    """Bounded LRU cache with optional expiry, safe to share between threads."""

    def __init__(self, max_entries: int = 256, ttl_seconds: float = 0, name: str = "cache") -> None:
        """
        Initialize the cache.

        Args:
            max_entries: Maximum entries kept. 0 disables caching.
            ttl_seconds: Entry lifetime. 0 means entries never expire.
            name: Label used in log messages.
        """
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._entries: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()
        self._stats = CacheStats()

    def get(self, key: Hashable) -> Any | None:
        """Get a cached value, or None on a miss or expired entry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                logger.debug(f"{self.name} miss: {key}")
                return None

            stored_at, value = entry
            if self.ttl_seconds and time.monotonic() - stored_at > self.ttl_seconds:
                del self._entries[key]
                self._stats.misses += 1
                logger.debug(f"{self.name} expired: {key}")
                return None

            self._entries.move_to_end(key)
            self._stats.hits += 1
            logger.debug(f"{self.name} hit: {key}")
            return value

    def set(self, key: Hashable, value: Any) -> None:
        """Store a value, evicting the least recently used entries if full."""
        if self.max_entries <= 0:
            return

        with self._lock:
            self._entries[key] = (time.monotonic(), value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
                self._stats.evictions += 1

    def get_or_set(self, key: Hashable, producer: Callable[[], T]) -> T:
        """Return the cached value for key, computing and storing it on a miss."""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = producer()
        self.set(key, value)
        return value

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        """Get a copy of the counters."""
        with self._lock:
            return CacheStats(
                hits=self._stats.hits,
                misses=self._stats.misses,
                evictions=self._stats.evictions,
                size=len(self._entries),
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
