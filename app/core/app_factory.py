"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
the lifetime of the shared components: the cache, the rate limiter, the
user store and the fetch queue are built once per app, kept on
``app.state``, and their background tasks are stopped on shutdown.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.rate_limit.in_memory import InMemoryDualWindowRateLimiter
from app.adapters.store.in_memory import InMemoryUserStore
from app.api.routes import cache_router, health_router, users_router
from app.core.config import Settings, settings as default_settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.services.fetch_coalescer import FetchCoalescer
from app.services.user_service import UserService, user_cache_key
from app.utils.periodic import PeriodicTask
from app.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)


def build_components(app: FastAPI, cfg: Settings) -> None:
    """Construct the shared component instances and attach them to ``app.state``."""

    cache = SimpleTTLCache(
        ttl_seconds=cfg.cache.ttl_seconds,
        max_entries=cfg.cache.max_entries,
    )
    rate_limiter = InMemoryDualWindowRateLimiter(
        limit=cfg.app.rate_limit_requests,
        window_seconds=cfg.app.rate_limit_window_seconds,
        burst_capacity=cfg.app.rate_limit_burst_capacity,
        burst_window_seconds=cfg.app.rate_limit_burst_window_seconds,
    )
    store = InMemoryUserStore(
        fetch_latency_seconds=cfg.store.fetch_latency_seconds,
        create_latency_seconds=cfg.store.create_latency_seconds,
    )
    coalescer = FetchCoalescer(
        store=store,
        cache=cache,
        cache_key=user_cache_key,
        tick_interval_seconds=cfg.store.queue_tick_seconds,
    )

    app.state.cache = cache
    app.state.rate_limiter = rate_limiter
    app.state.store = store
    app.state.coalescer = coalescer
    app.state.user_service = UserService(cache=cache, coalescer=coalescer, store=store)
    app.state.background_tasks = [
        PeriodicTask(
            name="cache-expiry-sweep",
            interval_seconds=cfg.cache.sweep_interval_seconds,
            callback=cache.purge_expired,
        ),
        PeriodicTask(
            name="rate-limit-cleanup",
            interval_seconds=cfg.app.rate_limit_cleanup_interval_seconds,
            callback=rate_limiter.cleanup_expired,
        ),
    ]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    cfg: Settings = app.state.settings
    build_components(app, cfg)

    app.state.coalescer.start()
    for task in app.state.background_tasks:
        task.start()
    app.state.started_at = time.monotonic()
    logger.info(
        "app.started",
        extra={
            "cache_ttl_s": cfg.cache.ttl_seconds,
            "cache_max_entries": cfg.cache.max_entries,
            "rate_limit_requests": cfg.app.rate_limit_requests,
            "rate_limit_burst": cfg.app.rate_limit_burst_capacity,
        },
    )
    try:
        yield
    finally:
        for task in app.state.background_tasks:
            await task.stop()
        await app.state.coalescer.stop()
        logger.info("app.stopped")


def create_app(cfg: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        cfg: Settings to build the app with; defaults to the environment.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    cfg = cfg or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title="User Cache API",
        description=(
            "User lookups served through a TTL/LRU cache, a dual-window rate "
            "limiter and a request-coalescing fetch queue in front of a slow "
            "backing store."
        ),
        version="1.0.0",
        debug=cfg.app.debug,
        lifespan=lifespan,
    )
    app.state.settings = cfg

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(cache_router)

    return app
