"""Fixtures for SQLite storage tests."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from opstrack.infrastructure.storage import SQLiteKeyValueStore


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "test.db"


@pytest.fixture
async def sqlite_store(temp_db_path: Path) -> AsyncGenerator[SQLiteKeyValueStore, None]:
    store = SQLiteKeyValueStore(temp_db_path)
    yield store
    await store.close()
