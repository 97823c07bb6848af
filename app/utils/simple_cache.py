"""In-memory TTL cache with LRU eviction used in front of the user store.

Thread-safe so it can be shared between async handlers and threadpool
workers. Expiry is checked lazily on every access; ``purge_expired`` is the
hook for the periodic background sweep.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import Any

from app.core.clock import Clock, monotonic_clock

logger = logging.getLogger(__name__)

# Number of recent get() timings kept for the average latency figure
LATENCY_WINDOW = 1000


@dataclass
class CacheEntry:
    """Cached value with insertion and access metadata."""

    value: Any
    inserted_at: float
    last_accessed_at: float
    access_count: int = 1


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time snapshot of cache counters."""

    hits: int
    misses: int
    total_requests: int
    current_size: int
    max_size: int
    average_latency_ms: float
    evictions: int
    expirations: int


class SimpleTTLCache:
    """Thread-safe, in-memory TTL cache with LRU eviction.

    Attributes:
        ttl_seconds: Time-to-live applied to all entries, counted from the
            last ``set`` of a key.
        max_entries: Maximum number of cached items.
    """

    def __init__(
        self,
        ttl_seconds: float = 60,
        max_entries: int = 1000,
        *,
        clock: Clock = monotonic_clock,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._latencies: deque[float] = deque(maxlen=LATENCY_WINDOW)
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"SimpleTTLCache(ttl_seconds={self._ttl}, max_entries={self._max_entries}, "
            f"size={len(self._store)}, hits={self._hits}, misses={self._misses}, "
            f"evictions={self._evictions})"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def lookup(self, key: str) -> tuple[Any, bool]:
        """Retrieve a cached value and whether a live entry was found.

        A hit refreshes the entry's recency and access metadata. An expired
        entry is dropped and reported as a miss. Stored ``None`` values are
        hits like any other value.

        Args:
            key: Cache key.

        Returns:
            Tuple of (value, found); value is None when not found.
        """

        started = time.perf_counter()
        with self._lock:
            try:
                entry = self._store.get(key)
                if entry is None:
                    self._misses += 1
                    logger.debug("cache.miss", extra={"cache_key": key, "reason": "not_found"})
                    return None, False

                now = self._clock()
                if self._is_expired(entry, now):
                    self._expire_single(key)
                    self._misses += 1
                    logger.debug("cache.miss", extra={"cache_key": key, "reason": "expired"})
                    return None, False

                entry.last_accessed_at = now
                entry.access_count += 1
                self._store.move_to_end(key)  # mark as recently used
                self._hits += 1
                logger.debug("cache.hit", extra={"cache_key": key})
                return entry.value, True
            finally:
                self._latencies.append((time.perf_counter() - started) * 1000)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value for ``key``, or ``default`` on a miss."""

        value, found = self.lookup(key)
        return value if found else default

    def set(self, key: str, value: Any) -> None:
        """Insert or overwrite a value, evicting the LRU entry when full.

        Overwriting an existing key restarts its TTL and makes it the most
        recently used entry.

        Args:
            key: Cache key.
            value: Value to store.
        """

        with self._lock:
            now = self._clock()
            if key in self._store:
                del self._store[key]
            elif len(self._store) >= self._max_entries:
                self._make_room_locked(now)

            self._store[key] = CacheEntry(value=value, inserted_at=now, last_accessed_at=now)

            logger.debug(
                "cache.set",
                extra={
                    "cache_key": key,
                    "size": len(self._store),
                    "ttl_s": self._ttl,
                },
            )

    def delete(self, key: str) -> bool:
        """Remove a key; return True if it was present."""

        with self._lock:
            return self._store.pop(key, None) is not None

    def has(self, key: str) -> bool:
        """Report whether a live entry exists without touching stats or recency."""

        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return False
            if self._is_expired(entry, self._clock()):
                self._expire_single(key)
                return False
            return True

    def keys(self) -> list[str]:
        """Live keys from least to most recently used; stats and recency untouched."""

        with self._lock:
            now = self._clock()
            return [k for k, entry in self._store.items() if not self._is_expired(entry, now)]

    def clear(self) -> None:
        """Remove all cached entries and reset counters."""

        with self._lock:
            self._store.clear()
            self._latencies.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
            self._expirations = 0

    def purge_expired(self) -> int:
        """Drop every entry whose age has reached the TTL.

        Returns:
            Number of entries removed.
        """

        with self._lock:
            now = self._clock()
            expired_keys = [k for k, entry in self._store.items() if self._is_expired(entry, now)]
            for key in expired_keys:
                self._expire_single(key)

        if expired_keys:
            logger.info(
                "cache.sweep",
                extra={"removed": len(expired_keys), "size": len(self)},
            )
        return len(expired_keys)

    def stats(self) -> CacheStats:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            now = self._clock()
            live = sum(1 for entry in self._store.values() if not self._is_expired(entry, now))
            average = sum(self._latencies) / len(self._latencies) if self._latencies else 0.0
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                total_requests=self._hits + self._misses,
                current_size=live,
                max_size=self._max_entries,
                average_latency_ms=average,
                evictions=self._evictions,
                expirations=self._expirations,
            )

    def _make_room_locked(self, now: float) -> None:
        # Expired entries are not live, so drop them before sacrificing a live one
        for key in [k for k, entry in self._store.items() if self._is_expired(entry, now)]:
            self._expire_single(key)

        while len(self._store) >= self._max_entries:
            # popitem(last=False) removes the least recently used entry
            key, _ = self._store.popitem(last=False)
            self._evictions += 1
            logger.debug("cache.evict", extra={"cache_key": key})

    def _expire_single(self, key: str) -> None:
        if self._store.pop(key, None) is not None:
            self._expirations += 1

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.inserted_at >= self._ttl
