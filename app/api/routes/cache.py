from __future__ import annotations

import time
from dataclasses import asdict
from typing import Annotated

import psutil
from fastapi import APIRouter, Depends, Request

from app.api.dependencies import get_cache, get_coalescer
from app.core.rate_limit import enforce_rate_limit
from app.schemas.status import (
    CacheClearedResponse,
    CacheStatsSchema,
    CacheStatusResponse,
    MemoryUsageSchema,
    QueueStatsSchema,
)
from app.services.fetch_coalescer import FetchCoalescer
from app.utils.simple_cache import SimpleTTLCache

router = APIRouter(
    prefix="/cache",
    tags=["Cache"],
    dependencies=[Depends(enforce_rate_limit)],
)


def _memory_usage() -> MemoryUsageSchema:
    info = psutil.Process().memory_info()
    return MemoryUsageSchema(rss_bytes=info.rss, vms_bytes=info.vms)


@router.delete("", response_model=CacheClearedResponse)
async def clear_cache(cache: Annotated[SimpleTTLCache, Depends(get_cache)]) -> CacheClearedResponse:
    """Drop every cached user and reset cache statistics."""
    cache.clear()
    return CacheClearedResponse(timestamp=time.time())


@router.get("/status", response_model=CacheStatusResponse)
async def cache_status(
    request: Request,
    cache: Annotated[SimpleTTLCache, Depends(get_cache)],
    coalescer: Annotated[FetchCoalescer, Depends(get_coalescer)],
) -> CacheStatusResponse:
    """Report cache counters, cached keys, fetch queue depth and process memory."""
    return CacheStatusResponse(
        cache=CacheStatsSchema(**asdict(cache.stats())),
        queue=QueueStatsSchema(**asdict(coalescer.stats())),
        keys=cache.keys(),
        memory=_memory_usage(),
        uptime_seconds=round(time.monotonic() - request.app.state.started_at, 3),
        timestamp=time.time(),
    )
