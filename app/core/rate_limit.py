"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: storage backend can be replaced (e.g., Redis) behind an
  abstract interface.
- The limiter instance lives on ``app.state``; nothing is cached in-module.

Rate limiting strategy:
- Dual fixed windows per client: a short burst window checked first, then a
  long window.
- The client is identified by its address, taken from X-Forwarded-For when
  the service runs behind a trusted proxy.
"""

from __future__ import annotations

import hashlib
import logging
import math
import time

from fastapi import HTTPException, Request, Response, status

from app.adapters.rate_limit.base import RateLimitResult
from app.api.dependencies import get_rate_limiter
from app.core.config import AppSettings

logger = logging.getLogger(__name__)


def _client_id(request: Request, *, trust_proxy: bool) -> str:
    """Build the limiter key for the current request.

    Args:
        request: FastAPI request.
        trust_proxy: Prefer the first X-Forwarded-For entry when present.

    Returns:
        str: Namespaced limiter key.
    """

    if trust_proxy:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return f"ip:{first}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def _epoch(reset_after_seconds: float) -> str:
    # Limiter timestamps are monotonic; clients need wall-clock reset times
    return str(int(math.ceil(time.time() + reset_after_seconds)))


def build_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Render the limiter decision as X-RateLimit-* headers."""

    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": _epoch(result.reset_after_seconds),
        "X-RateLimit-Burst-Limit": str(result.burst_limit),
        "X-RateLimit-Burst-Remaining": str(result.burst_remaining),
        "X-RateLimit-Burst-Reset": _epoch(result.burst_reset_after_seconds),
    }
    if result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    return headers


def _denial_message(result: RateLimitResult, cfg: AppSettings) -> str:
    if result.scope == "burst":
        window = cfg.rate_limit_burst_window_seconds
        label = "Burst limit"
    else:
        window = cfg.rate_limit_window_seconds
        label = "Rate limit"
    return (
        f"Too many requests. {label} of {result.limit} requests per "
        f"{window:g} seconds exceeded."
    )


async def enforce_rate_limit(request: Request, response: Response) -> None:
    """FastAPI dependency enforcing rate limits.

    When enabled, counts one request against the caller's windows. Allowed
    responses carry the current budget in headers; exhausted budgets raise
    HTTP 429 with a Retry-After hint for the window that denied the request.

    Args:
        request: FastAPI request.
        response: Response whose headers receive the current budget.

    Raises:
        HTTPException: 429 Too Many Requests when rate limit is exceeded.
    """

    cfg: AppSettings = request.app.state.settings.app
    if not cfg.rate_limit_enabled:
        return

    limiter = get_rate_limiter(request)
    key = _client_id(request, trust_proxy=cfg.trust_proxy)
    key_hash = _hash_limiter_key(key)

    result = limiter.check(key)
    headers = build_rate_limit_headers(result) if cfg.rate_limit_include_headers else {}

    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
                "burst_remaining": result.burst_remaining,
            },
        )
        response.headers.update(headers)
        return

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "scope": result.scope,
            "limit": result.limit,
            "retry_after_s": result.retry_after_seconds,
        },
    )

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={
            "code": f"rate_limited_{result.scope}",
            "message": _denial_message(result, cfg),
            "scope": result.scope,
            "retry_after": result.retry_after_seconds,
            "limit": result.limit,
            "remaining": result.remaining,
        },
        headers=headers or None,
    )
