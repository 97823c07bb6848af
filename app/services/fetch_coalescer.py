"""Coalescing fetch queue in front of the backing store.

Concurrent requests for the same cold key share a single backend call:
the first caller creates a pending fetch and queues the key, later callers
attach to it as waiters. A single worker task drains the queue one key at a
time, so at most one backend call is in flight. Every waiter of a fetch cycle
observes the same value or the same error, completed in attachment order.

There is no timeout and no way to withdraw a waiter; a failed cycle is not
retried, and the next ``fetch`` for that key starts a new one.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any

from app.adapters.store.base import AbstractBackingStore
from app.core.clock import Clock, monotonic_clock
from app.core.errors import AppError, InternalAppError, NotFoundAppError
from app.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)


@dataclass
class PendingFetch:
    """Fetch cycle for one key and the futures waiting on it."""

    key: Hashable
    enqueued_at: float
    waiters: list[asyncio.Future[Any]] = field(default_factory=list)


@dataclass(frozen=True)
class CoalescerStats:
    """Point-in-time snapshot of the queue."""

    queue_length: int
    pending_key_count: int
    total_waiters: int
    worker_busy: bool


class FetchCoalescer:
    """Deduplicating, single-flight fetch queue.

    Attributes:
        store: Backing store queried by the worker.
        cache: Cache populated with every successfully fetched value.
        cache_key: Maps a store key to its cache key.
        tick_interval_seconds: Pause between consecutive backend calls.
    """

    def __init__(
        self,
        *,
        store: AbstractBackingStore,
        cache: SimpleTTLCache | None = None,
        cache_key: Callable[[Hashable], str] = str,
        tick_interval_seconds: float = 0.0,
        clock: Clock = monotonic_clock,
    ) -> None:
        if tick_interval_seconds < 0:
            raise ValueError("tick_interval_seconds must be >= 0")

        self._store = store
        self._cache = cache
        self._cache_key = cache_key
        self._tick = tick_interval_seconds
        self._clock = clock
        self._queue: deque[Hashable] = deque()
        self._pending: dict[Hashable, PendingFetch] = {}
        self._wakeup = asyncio.Event()
        self._busy = False
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the worker task on the running event loop."""

        if self.is_running:
            return
        self._task = asyncio.create_task(self._worker(), name="fetch-coalescer")
        logger.info("coalescer.started")

    async def stop(self) -> None:
        """Cancel the worker and fail every waiter still queued."""

        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        self._busy = False

        if self._pending:
            error = InternalAppError(
                code="fetch_queue_stopped",
                message="Fetch queue stopped before the request was served",
            )
            for key in list(self._queue):
                self._complete(key, error=error)
        logger.info("coalescer.stopped")

    def submit(self, key: Hashable) -> asyncio.Future[Any]:
        """Attach a new waiter for ``key`` and return its future.

        Queues the key when no fetch cycle is pending for it; otherwise the
        waiter joins the existing cycle and no backend call is added.
        """

        waiter: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        pending = self._pending.get(key)
        if pending is not None:
            pending.waiters.append(waiter)
            logger.debug(
                "coalescer.attached",
                extra={"fetch_key": str(key), "waiters": len(pending.waiters)},
            )
            return waiter

        self._pending[key] = PendingFetch(key=key, enqueued_at=self._clock(), waiters=[waiter])
        self._queue.append(key)
        self._wakeup.set()
        logger.debug(
            "coalescer.enqueued",
            extra={"fetch_key": str(key), "queue_length": len(self._queue)},
        )
        return waiter

    async def fetch(self, key: Hashable) -> Any:
        """Wait for the value of ``key`` from the current or a new fetch cycle.

        Raises:
            NotFoundAppError: The backing store has no such key.
            InternalAppError: The backend call failed for another reason.
        """

        try:
            return await self.submit(key)
        except AppError as exc:
            # Waiters share one instance; restart its traceback at this frame
            raise exc.with_traceback(None)

    def stats(self) -> CoalescerStats:
        return CoalescerStats(
            queue_length=len(self._queue),
            pending_key_count=len(self._pending),
            total_waiters=sum(len(p.waiters) for p in self._pending.values()),
            worker_busy=self._busy,
        )

    async def _worker(self) -> None:
        while True:
            while not self._queue:
                self._wakeup.clear()
                await self._wakeup.wait()

            await self._process(self._queue[0])

            if self._tick > 0:
                await asyncio.sleep(self._tick)

    async def _process(self, key: Hashable) -> None:
        self._busy = True
        try:
            value = await self._store.fetch(key)
            if self._cache is not None:
                self._cache.set(self._cache_key(key), value)
        except NotFoundAppError as exc:
            self._complete(key, error=exc)
        except Exception as exc:
            error = InternalAppError(
                code="backing_store_error",
                message=f"Failed to fetch {key}",
                details={"key": str(key), "error_type": type(exc).__name__},
            )
            error.__cause__ = exc
            logger.warning(
                "coalescer.backend_error",
                extra={"fetch_key": str(key), "error_type": type(exc).__name__},
            )
            self._complete(key, error=error)
        else:
            self._complete(key, value=value)
        finally:
            self._busy = False

    def _complete(self, key: Hashable, *, value: Any = None, error: AppError | None = None) -> None:
        # Queue and pending map change together, before any waiter runs
        pending = self._pending.pop(key)
        self._queue.remove(key)

        elapsed_ms = (self._clock() - pending.enqueued_at) * 1000
        if error is None:
            logger.info(
                "coalescer.resolved",
                extra={
                    "fetch_key": str(key),
                    "waiters": len(pending.waiters),
                    "elapsed_ms": round(elapsed_ms, 2),
                },
            )
        else:
            logger.info(
                "coalescer.rejected",
                extra={
                    "fetch_key": str(key),
                    "waiters": len(pending.waiters),
                    "error_code": error.code,
                    "elapsed_ms": round(elapsed_ms, 2),
                },
            )

        for waiter in pending.waiters:
            if waiter.done():
                continue
            if error is None:
                waiter.set_result(value)
            else:
                waiter.set_exception(error)
