"""
Abstract interface for the persistent key/value store.

Values are serialized collections (JSON text). Every operation may fail
with PersistenceError; a failed write must not be treated as partially
applied.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping

# Marker key checked by initialize_if_empty
MARKER_KEY = "materials"


class IKeyValueStore(ABC):
    """Interface for durable key/value persistence."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Get the serialized value stored under key, None if absent."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a serialized value under key."""
        pass

    @abstractmethod
    async def set_many(self, values: Mapping[str, str]) -> None:
        """Store several values atomically (all or nothing)."""
        pass

    async def initialize_if_empty(self, defaults: Mapping[str, str]) -> bool:
        """
        Seed the store when the marker key is absent.

        Only the marker key is checked. All defaults are written in a
        single set_many batch.

        Returns:
            True if defaults were written
        """
        if await self.get(MARKER_KEY) is not None:
            return False
        await self.set_many(defaults)
        return True

    async def close(self) -> None:
        """Release underlying resources."""
        return None
