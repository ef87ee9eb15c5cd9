"""Pytest configuration and fixtures."""

import asyncio
from collections.abc import AsyncGenerator, Mapping

import pytest

from opstrack.application import OperationsTracker
from opstrack.config import LedgerSettings
from opstrack.core.entities import Customer, Material
from opstrack.core.services import (
    BusinessEventOrchestrator,
    CollectionKey,
    DisplayNumberAllocator,
    EntityRepository,
    StockLedgerService,
)
from opstrack.infrastructure.storage import InMemoryKeyValueStore


@pytest.fixture
def memory_store() -> InMemoryKeyValueStore:
    """Empty in-memory key/value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
async def repository(memory_store: InMemoryKeyValueStore) -> EntityRepository:
    """Loaded repository without sample data."""
    repo = EntityRepository(memory_store, seed_defaults=False)
    await repo.load()
    return repo


class YieldingKeyValueStore(InMemoryKeyValueStore):
    """Suspends inside every write so concurrent tasks can interleave."""

    async def set_many(self, values: Mapping[str, str]) -> None:
        await asyncio.sleep(0)
        await super().set_many(values)


@pytest.fixture
async def yielding_repository() -> EntityRepository:
    """Loaded repository over a store that yields to the event loop on writes."""
    repo = EntityRepository(YieldingKeyValueStore(), seed_defaults=False)
    await repo.load()
    return repo


@pytest.fixture
def ledger(repository: EntityRepository) -> StockLedgerService:
    return StockLedgerService(repository)


@pytest.fixture
def orchestrator(
    repository: EntityRepository, ledger: StockLedgerService
) -> BusinessEventOrchestrator:
    return BusinessEventOrchestrator(
        repository,
        ledger,
        sale_numbers=DisplayNumberAllocator("SO-"),
        production_numbers=DisplayNumberAllocator("PO-"),
    )


@pytest.fixture
async def tracker(memory_store: InMemoryKeyValueStore) -> AsyncGenerator[OperationsTracker, None]:
    """Started tracker over an empty in-memory store."""
    t = OperationsTracker(
        EntityRepository(memory_store, seed_defaults=False),
        ledger_settings=LedgerSettings(),
    )
    await t.start()
    yield t
    await t.close()


@pytest.fixture
def make_material(repository: EntityRepository):
    """Add a material to the repository."""

    async def _make(
        name: str = "Cement",
        current_quantity: float = 100,
        min_quantity: float = 20,
        unit: str = "bags",
        price_per_unit: float = 7.5,
    ) -> Material:
        return await repository.add(
            CollectionKey.MATERIALS,
            Material(
                name=name,
                current_quantity=current_quantity,
                min_quantity=min_quantity,
                unit=unit,
                price_per_unit=price_per_unit,
            ),
        )

    return _make


@pytest.fixture
def make_customer(repository: EntityRepository):
    """Add a customer to the repository."""

    async def _make(name: str = "ABC Construction Co.") -> Customer:
        return await repository.add(
            CollectionKey.CUSTOMERS, Customer(name=name, contact="555-1234")
        )

    return _make
