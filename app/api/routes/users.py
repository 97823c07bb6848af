from __future__ import annotations

import time
from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_user_service
from app.core.rate_limit import enforce_rate_limit
from app.schemas.users import CreateUserRequest, UserResponse
from app.services.user_service import UserService

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    dependencies=[Depends(enforce_rate_limit)],
)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Return a user, from the cache when possible.

    Concurrent misses for the same id share one store lookup.

    Raises:
        ValidationAppError: 400 when the id is not a positive integer.
        NotFoundAppError: 404 when the user does not exist.
    """
    started = time.perf_counter()
    user, cached = await service.get_user(user_id)
    return UserResponse(
        data=user,
        cached=cached,
        timestamp=time.time(),
        response_time_ms=round((time.perf_counter() - started) * 1000, 3),
    )


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: CreateUserRequest,
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Create a user and seed the cache with it."""
    started = time.perf_counter()
    user = await service.create_user(payload.name, payload.email)
    return UserResponse(
        data=user,
        cached=False,
        timestamp=time.time(),
        response_time_ms=round((time.perf_counter() - started) * 1000, 3),
    )
