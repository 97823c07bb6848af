"""Time source shared by the cache, the rate limiter and the fetch queue.

Components accept any zero-argument callable returning seconds so tests can
substitute a controllable clock.
"""

from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], float]


def monotonic_clock() -> float:
    """Return monotonic seconds, unaffected by wall-clock adjustments."""

    return time.monotonic()
