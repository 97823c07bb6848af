"""Accessors for the per-application component instances.

Instances are created once by the app lifespan and kept on ``app.state``;
routes obtain them through these dependencies instead of module globals.
"""

from __future__ import annotations

from fastapi import Request

from app.adapters.rate_limit.in_memory import InMemoryDualWindowRateLimiter
from app.services.fetch_coalescer import FetchCoalescer
from app.services.user_service import UserService
from app.utils.simple_cache import SimpleTTLCache


def get_cache(request: Request) -> SimpleTTLCache:
    return request.app.state.cache


def get_rate_limiter(request: Request) -> InMemoryDualWindowRateLimiter:
    return request.app.state.rate_limiter


def get_coalescer(request: Request) -> FetchCoalescer:
    return request.app.state.coalescer


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service
