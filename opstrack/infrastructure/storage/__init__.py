"""Persistent store implementations and factory."""

from opstrack.config import StorageSettings, get_settings
from opstrack.core.interfaces.storage import IKeyValueStore
from opstrack.infrastructure.storage.memory_store import InMemoryKeyValueStore
from opstrack.infrastructure.storage.sample_data import SampleData, build_sample_data
from opstrack.infrastructure.storage.sqlite import SQLiteKeyValueStore


def create_store(settings: StorageSettings | None = None) -> IKeyValueStore:
    """Build the configured persistent store backend."""
    settings = settings or get_settings().storage
    if settings.backend == "memory":
        return InMemoryKeyValueStore()
    return SQLiteKeyValueStore.from_settings(settings)


__all__ = [
    "InMemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "SampleData",
    "build_sample_data",
    "create_store",
]
