"""User lookups and writes orchestrating the cache, fetch queue and store.

Reads check the cache first and fall back to the coalescing fetch queue,
which populates the cache on success. Writes go to the store directly and
then seed the cache with the new record.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable

from app.adapters.store.in_memory import InMemoryUserStore
from app.core.errors import ValidationAppError
from app.schemas.users import User
from app.services.fetch_coalescer import FetchCoalescer
from app.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)


def user_cache_key(user_id: Hashable) -> str:
    """Build the cache key for a user id."""

    return f"user:{user_id}"


class UserService:
    """Application service behind the /users endpoints."""

    def __init__(
        self,
        *,
        cache: SimpleTTLCache,
        coalescer: FetchCoalescer,
        store: InMemoryUserStore,
    ) -> None:
        self._cache = cache
        self._coalescer = coalescer
        self._store = store

    async def get_user(self, user_id: int) -> tuple[User, bool]:
        """Return the user and whether it came from the cache.

        Args:
            user_id: Positive user identifier.

        Returns:
            Tuple of (user, cached).

        Raises:
            ValidationAppError: If user_id is not a positive integer.
            NotFoundAppError: If no such user exists.
            InternalAppError: If the store lookup failed.
        """
        if user_id <= 0:
            raise ValidationAppError(
                code="invalid_user_id",
                message="Invalid user ID. Must be a positive integer.",
            )

        cached, found = self._cache.lookup(user_cache_key(user_id))
        if found:
            return cached, True

        user = await self._coalescer.fetch(user_id)
        return user, False

    async def create_user(self, name: str, email: str) -> User:
        """Create a user in the store and cache it."""

        user = await self._store.create_user(name, email)
        self._cache.set(user_cache_key(user.id), user)
        return user
