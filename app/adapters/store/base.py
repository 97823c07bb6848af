from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Hashable
from typing import Any


class AbstractBackingStore(ABC):
    """Interface for slow key/value lookups sitting behind the cache."""

    @abstractmethod
    async def fetch(self, key: Hashable) -> Any:
        """Load the value stored under ``key``.

        Args:
            key: Store-specific identifier.

        Returns:
            The stored value.

        Raises:
            NotFoundAppError: If the key does not exist.
        """
        ...
