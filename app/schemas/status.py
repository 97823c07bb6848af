"""Pydantic schemas for cache and queue status responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CacheStatsSchema(BaseModel):
    hits: int
    misses: int
    total_requests: int
    current_size: int
    max_size: int
    average_latency_ms: float
    evictions: int
    expirations: int


class QueueStatsSchema(BaseModel):
    queue_length: int = Field(..., description="Distinct keys waiting for the fetch worker.")
    pending_key_count: int = Field(..., description="Keys with an open fetch cycle.")
    total_waiters: int = Field(..., description="Callers suspended on pending fetches.")
    worker_busy: bool = Field(..., description="True while a backend call is in flight.")


class MemoryUsageSchema(BaseModel):
    rss_bytes: int = Field(..., description="Resident set size of the server process.")
    vms_bytes: int = Field(..., description="Virtual memory size of the server process.")


class CacheStatusResponse(BaseModel):
    """Body of GET /cache/status."""

    success: bool = True
    cache: CacheStatsSchema
    queue: QueueStatsSchema
    keys: list[str] = Field(default_factory=list, description="Live cache keys, least recently used first.")
    memory: MemoryUsageSchema
    uptime_seconds: float
    timestamp: float


class CacheClearedResponse(BaseModel):
    success: bool = True
    message: str = "Cache cleared successfully"
    timestamp: float
