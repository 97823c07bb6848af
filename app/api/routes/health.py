from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring systems to determine service health.
    Not rate limited.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/")
def api_info(request: Request) -> dict:
    """Describe the available endpoints and the active limits."""

    cfg = request.app.state.settings
    return {
        "name": "User Cache API",
        "version": request.app.version,
        "endpoints": {
            "GET /": "API description",
            "GET /health": "Health check",
            "GET /users/{user_id}": "Get user by ID (cached, coalesced on miss)",
            "POST /users": "Create a new user",
            "DELETE /cache": "Clear the user cache",
            "GET /cache/status": "Cache and fetch queue statistics",
        },
        "rate_limiting": {
            "requests": cfg.app.rate_limit_requests,
            "window_seconds": cfg.app.rate_limit_window_seconds,
            "burst_capacity": cfg.app.rate_limit_burst_capacity,
            "burst_window_seconds": cfg.app.rate_limit_burst_window_seconds,
        },
        "caching": {
            "strategy": "LRU with TTL",
            "ttl_seconds": cfg.cache.ttl_seconds,
            "max_entries": cfg.cache.max_entries,
        },
    }
