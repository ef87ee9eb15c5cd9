"""In-memory key/value store for tests and ephemeral sessions."""

from collections.abc import Mapping

from opstrack.config import get_logger
from opstrack.core.exceptions import PersistenceError
from opstrack.core.interfaces.storage import IKeyValueStore

logger = get_logger(__name__)


class InMemoryKeyValueStore(IKeyValueStore):
    """
    Dict-backed store.

    ``fail_writes`` / ``fail_reads`` make every subsequent write or read
    raise PersistenceError, for exercising failure paths.
    """

    def __init__(self, initial: Mapping[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})
        self.fail_writes = False
        self.fail_reads = False
        self.write_count = 0

    async def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise PersistenceError("get", "store unavailable", keys=[key])
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        await self.set_many({key: value})

    async def set_many(self, values: Mapping[str, str]) -> None:
        if self.fail_writes:
            raise PersistenceError("set", "store unavailable", keys=list(values))
        self.data.update(values)
        self.write_count += 1
