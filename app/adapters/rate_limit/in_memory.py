"""In-memory dual-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Fixed windows, not sliding: O(1) memory and update cost per client.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, replace

from app.adapters.rate_limit.base import AbstractRateLimiter, LimitScope, RateLimitResult
from app.core.clock import Clock, monotonic_clock

logger = logging.getLogger(__name__)


@dataclass
class RateLimitState:
    """Counters for one client; windows start at the client's first request."""

    window_count: int
    window_reset_at: float
    burst_count: int
    burst_reset_at: float


class InMemoryDualWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter tracking a short burst window and a long window per key.

    The burst gate is evaluated first because it is the tighter constraint
    and yields the shorter retry hint. A request is only counted when it is
    allowed, so neither counter ever exceeds its capacity.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        burst_capacity: int,
        burst_window_seconds: float,
        clock: Clock = monotonic_clock,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of requests per long window.
            window_seconds: Size of the long window in seconds.
            burst_capacity: Maximum number of requests per burst window.
            burst_window_seconds: Size of the burst window in seconds.
            clock: Monotonic time source returning seconds.

        Raises:
            ValueError: If any limit or window size is invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if burst_capacity < 1:
            raise ValueError("burst_capacity must be >= 1")
        if burst_window_seconds <= 0:
            raise ValueError("burst_window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._burst_capacity = burst_capacity
        self._burst_window_seconds = burst_window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, RateLimitState] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def _get_or_reset_state(self, key: str, now: float) -> RateLimitState:
        """Get the state for key, starting fresh windows where they elapsed."""
        state = self._state_by_key.get(key)
        if state is None:
            state = RateLimitState(
                window_count=0,
                window_reset_at=now + self._window_seconds,
                burst_count=0,
                burst_reset_at=now + self._burst_window_seconds,
            )
            self._state_by_key[key] = state
            return state

        if now >= state.burst_reset_at:
            state.burst_count = 0
            state.burst_reset_at = now + self._burst_window_seconds
        if now >= state.window_reset_at:
            state.window_count = 0
            state.window_reset_at = now + self._window_seconds
        return state

    def _build_result(self, state: RateLimitState, *, now: float) -> RateLimitResult:
        """Build an allowed RateLimitResult reporting the long window."""
        return RateLimitResult(
            allowed=True,
            limit=self._limit,
            remaining=max(0, self._limit - state.window_count),
            reset_at=state.window_reset_at,
            retry_after_seconds=None,
            burst_limit=self._burst_capacity,
            burst_remaining=max(0, self._burst_capacity - state.burst_count),
            burst_reset_at=state.burst_reset_at,
            reset_after_seconds=max(0.0, state.window_reset_at - now),
            burst_reset_after_seconds=max(0.0, state.burst_reset_at - now),
        )

    def _build_blocked_result(
        self, state: RateLimitState, *, now: float, scope: LimitScope
    ) -> RateLimitResult:
        """Build a RateLimitResult for a request denied by ``scope``."""
        if scope == "burst":
            limit, reset_at = self._burst_capacity, state.burst_reset_at
        else:
            limit, reset_at = self._limit, state.window_reset_at

        retry_after = max(0, int(math.ceil(reset_at - now)))
        return replace(
            self._build_result(state, now=now),
            allowed=False,
            scope=scope,
            limit=limit,
            remaining=0,
            reset_at=reset_at,
            retry_after_seconds=retry_after,
            reset_after_seconds=max(0.0, reset_at - now),
        )

    def check(self, key: str) -> RateLimitResult:
        """Check and, when allowed, count one request for the provided key.

        Args:
            key: Unique identifier for rate limiting (e.g., client address).

        Returns:
            RateLimitResult with allowance decision and metadata. Never
            raises; any string, including an empty one, is a valid client.
        """
        with self._lock:
            now = self._clock()
            state = self._get_or_reset_state(key, now)

            if state.burst_count >= self._burst_capacity:
                return self._build_blocked_result(state, now=now, scope="burst")
            if state.window_count >= self._limit:
                return self._build_blocked_result(state, now=now, scope="window")

            state.window_count += 1
            state.burst_count += 1
            return self._build_result(state, now=now)

    def get_status(self, key: str) -> RateLimitState | None:
        """Return a copy of the counters for ``key`` without counting a request."""
        with self._lock:
            state = self._state_by_key.get(key)
            return replace(state) if state is not None else None

    def reset(self, key: str | None = None) -> None:
        """Forget one client, or every client when ``key`` is None."""
        with self._lock:
            if key is None:
                self._state_by_key.clear()
            else:
                self._state_by_key.pop(key, None)

    def cleanup_expired(self) -> int:
        """Drop clients whose burst and long windows have both elapsed."""
        with self._lock:
            now = self._clock()
            stale = [
                key
                for key, state in self._state_by_key.items()
                if now >= state.window_reset_at and now >= state.burst_reset_at
            ]
            for key in stale:
                del self._state_by_key[key]

        if stale:
            logger.info("rate_limit.cleanup", extra={"removed": len(stale)})
        return len(stale)
