"""SQLite implementation of the key/value persistent store."""

from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite

from opstrack.config import StorageSettings, get_logger
from opstrack.core.exceptions import PersistenceError
from opstrack.core.interfaces.storage import IKeyValueStore
from opstrack.infrastructure.storage.sqlite.connection import ConnectionPool

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


class SQLiteKeyValueStore(IKeyValueStore):
    """Stores each collection as one JSON row in a single table."""

    def __init__(
        self,
        db_path: Path,
        pool_size: int = 1,
        busy_timeout: int = 30000,
    ):
        self._pool = ConnectionPool(
            db_path=db_path, pool_size=pool_size, busy_timeout=busy_timeout
        )
        self._schema_ready = False

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> "SQLiteKeyValueStore":
        return cls(db_path=settings.db_path, busy_timeout=settings.busy_timeout)

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self._pool.transaction() as conn:
            await conn.execute(SCHEMA)
        self._schema_ready = True

    async def get(self, key: str) -> str | None:
        """Get the serialized value stored under key."""
        try:
            await self._ensure_schema()
            async with self._pool.acquire() as conn:
                cursor = await conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                )
                row = await cursor.fetchone()
        except (aiosqlite.Error, OSError) as e:
            logger.error("kv_read_failed", key=key, error=str(e))
            raise PersistenceError("get", str(e), keys=[key]) from e
        if row is None:
            return None
        return row["value"]

    async def set(self, key: str, value: str) -> None:
        """Store a serialized value under key."""
        await self.set_many({key: value})

    async def set_many(self, values: Mapping[str, str]) -> None:
        """Write all values in one transaction."""
        if not values:
            return
        now = datetime.now(UTC).isoformat()
        try:
            await self._ensure_schema()
            async with self._pool.transaction() as conn:
                await conn.executemany(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    [(key, value, now) for key, value in values.items()],
                )
        except (aiosqlite.Error, OSError) as e:
            logger.error("kv_write_failed", keys=list(values), error=str(e))
            raise PersistenceError("set", str(e), keys=list(values)) from e
        logger.debug("kv_written", keys=list(values))

    async def keys(self) -> list[str]:
        """List stored keys."""
        try:
            await self._ensure_schema()
            async with self._pool.acquire() as conn:
                cursor = await conn.execute("SELECT key FROM kv_store ORDER BY key")
                rows = await cursor.fetchall()
        except (aiosqlite.Error, OSError) as e:
            raise PersistenceError("keys", str(e)) from e
        return [row["key"] for row in rows]

    async def close(self) -> None:
        if self._pool.initialized:
            await self._pool.close()
        self._schema_ready = False
