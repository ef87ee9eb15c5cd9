"""SQLite storage implementations."""

from opstrack.infrastructure.storage.sqlite.connection import ConnectionPool
from opstrack.infrastructure.storage.sqlite.kv_store import SQLiteKeyValueStore

__all__ = [
    "ConnectionPool",
    "SQLiteKeyValueStore",
]
