"""Simulated user database with fixed latency.

Seeded with three users; writes allocate increasing ids starting at 4.
State is per instance, so every app (and every test) gets its own copy.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from app.adapters.store.base import AbstractBackingStore
from app.core.errors import NotFoundAppError
from app.schemas.users import User

logger = logging.getLogger(__name__)


def _seed_users() -> dict[int, User]:
    return {
        1: User(
            id=1,
            name="John Doe",
            email="john@example.com",
            created_at=datetime(2023, 1, 1, tzinfo=timezone.utc),
        ),
        2: User(
            id=2,
            name="Jane Smith",
            email="jane@example.com",
            created_at=datetime(2023, 1, 2, tzinfo=timezone.utc),
        ),
        3: User(
            id=3,
            name="Alice Johnson",
            email="alice@example.com",
            created_at=datetime(2023, 1, 3, tzinfo=timezone.utc),
        ),
    }


class InMemoryUserStore(AbstractBackingStore):
    """User store keeping records in a dict and sleeping to mimic I/O."""

    def __init__(
        self,
        *,
        fetch_latency_seconds: float = 0.2,
        create_latency_seconds: float = 0.1,
    ) -> None:
        if fetch_latency_seconds < 0 or create_latency_seconds < 0:
            raise ValueError("latencies must be >= 0")

        self._fetch_latency = fetch_latency_seconds
        self._create_latency = create_latency_seconds
        self._users = _seed_users()
        self._next_id = 4

    async def fetch(self, key: int) -> User:
        await asyncio.sleep(self._fetch_latency)

        user = self._users.get(key)
        if user is None:
            raise NotFoundAppError(
                code="user_not_found",
                message=f"User with ID {key} not found",
                details={"key": str(key)},
            )
        return user

    async def create_user(self, name: str, email: str) -> User:
        """Persist a new user and return it with its allocated id."""

        await asyncio.sleep(self._create_latency)

        user = User(
            id=self._next_id,
            name=name,
            email=email,
            created_at=datetime.now(timezone.utc),
        )
        self._next_id += 1
        self._users[user.id] = user
        logger.info("store.user_created", extra={"user_id": user.id})
        return user

    def list_users(self) -> list[User]:
        return list(self._users.values())

    def reset(self) -> None:
        """Drop created users and restart id allocation."""

        self._users = _seed_users()
        self._next_id = 4
