"""Cancellable background task that runs a callback at a fixed interval.

Used for the cache expiry sweep and the rate limiter cleanup so that each
component owns one task that is stopped explicitly on shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run ``callback`` every ``interval_seconds`` until stopped."""

    def __init__(self, *, name: str, interval_seconds: float, callback: Callable[[], object]) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self._name = name
        self._interval = interval_seconds
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name=self._name)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._callback()
            except Exception:
                # One failed sweep must not end the schedule
                logger.exception("periodic_task.failed", extra={"task": self._name})
