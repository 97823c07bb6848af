"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so we can swap storage backends later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

LimitScope = Literal["burst", "window"]


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        scope: Which window denied the request (None when allowed).
        limit: Capacity of the reported window (long window when allowed,
            the denying window otherwise).
        remaining: Remaining requests in the reported window (0 when blocked).
        reset_at: Clock time in seconds when the reported window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
        burst_limit: Capacity of the burst window.
        burst_remaining: Remaining requests in the burst window.
        burst_reset_at: Clock time in seconds when the burst window resets.
        reset_after_seconds: Seconds from now until ``reset_at``.
        burst_reset_after_seconds: Seconds from now until ``burst_reset_at``.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after_seconds: int | None
    scope: LimitScope | None = None
    burst_limit: int = 0
    burst_remaining: int = 0
    burst_reset_at: float = 0.0
    reset_after_seconds: float = 0.0
    burst_reset_after_seconds: float = 0.0


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(self, key: str) -> RateLimitResult:
        """Decide whether one more request from ``key`` may proceed.

        Args:
            key: Client identifier (e.g., IP address); any string is accepted.

        Returns:
            RateLimitResult describing whether it was allowed. Denial is
            reported in the result, never raised.
        """
        raise NotImplementedError

    @abstractmethod
    def cleanup_expired(self) -> int:
        """Forget clients whose windows have all elapsed.

        Returns:
            Number of clients removed.
        """
        raise NotImplementedError
