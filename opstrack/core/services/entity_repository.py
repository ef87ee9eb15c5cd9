"""
Entity Repository - authoritative in-memory collections.

Holds the six entity collections, hydrates them from the persistent
store at startup and writes whole collections back on every mutation.
Storage is written first; the in-memory collection is only swapped after
the write succeeded, so memory never runs ahead of storage. All writes
run under one lock, see ``EntityRepository.transaction``.
"""

import asyncio
from collections.abc import AsyncIterator, Callable, Iterator, Mapping, Sequence
from contextlib import asynccontextmanager
from enum import Enum
from typing import Generic, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from opstrack.config import get_logger
from opstrack.core.entities import (
    BOQ,
    Customer,
    Entity,
    Material,
    Production,
    Sale,
    StockMovement,
    new_id,
    utc_now,
)
from opstrack.core.exceptions import EntityNotFoundError, PersistenceError
from opstrack.core.interfaces.storage import MARKER_KEY, IKeyValueStore

logger = get_logger(__name__)

T = TypeVar("T", bound=Entity)


class CollectionKey(str, Enum):
    """Storage keys of the persisted collections."""

    MATERIALS = "materials"
    SALES = "sales"
    BOQS = "boqs"
    PRODUCTIONS = "productions"
    STOCK_MOVEMENTS = "stockMovements"
    CUSTOMERS = "customers"


ChangeListener = Callable[[frozenset[CollectionKey]], None]


class EntityCollection(Generic[T]):
    """
    Ordered collection of one entity type.

    Reads hand out copies; the stored objects are only replaced by the
    owning repository.
    """

    def __init__(self, key: CollectionKey, model: type[T], label: str):
        self.key = key
        self.model = model
        self.label = label
        self._items: list[T] = []
        self._adapter = TypeAdapter(list[model])  # type: ignore[valid-type]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.list())

    def get_by_id(self, entity_id: str) -> T | None:
        index = self.index_of(entity_id)
        if index is None:
            return None
        return self._items[index].model_copy(deep=True)

    def index_of(self, entity_id: str) -> int | None:
        for index, item in enumerate(self._items):
            if item.id == entity_id:
                return index
        return None

    def find(self, predicate: Callable[[T], bool]) -> list[T]:
        return [item.model_copy(deep=True) for item in self._items if predicate(item)]

    def with_appended(self, entity: T) -> list[T]:
        """New item list with entity added at the end."""
        return [*self._items, entity]

    def with_replaced(self, entity: T) -> list[T]:
        """New item list with the entity of the same id replaced."""
        index = self.index_of(entity.id or "")
        if index is None:
            raise EntityNotFoundError(self.label, entity.id or "")
        items = list(self._items)
        items[index] = entity
        return items

    def without(self, entity_id: str) -> list[T]:
        return [item for item in self._items if item.id != entity_id]

    def encode(self, items: Sequence[T]) -> str:
        """Serialize items to the stored JSON array."""
        try:
            return self._adapter.dump_json(
                list(items), by_alias=True, exclude_none=True
            ).decode("utf-8")
        except PydanticSerializationError as e:
            raise PersistenceError("serialize", str(e), keys=[self.key.value]) from e

    def decode(self, raw: str) -> list[T]:
        """Parse a stored JSON array (raises pydantic ValidationError)."""
        return self._adapter.validate_json(raw)

    def _swap(self, items: Sequence[T]) -> None:
        self._items = list(items)

    # Last in the class body: the name shadows the builtin for later annotations
    def list(self) -> "list[T]":
        """All entities in insertion order."""
        return [item.model_copy(deep=True) for item in self._items]


class EntityRepository:
    """
    Owns all entity collections and their write-through persistence.

    Args:
        store: Persistent key/value store
        defaults: Built-in collections used to seed an empty store and as
            fallback when a collection cannot be loaded
        seed_defaults: Write defaults to an empty store on load
    """

    def __init__(
        self,
        store: IKeyValueStore,
        defaults: Mapping[CollectionKey, Sequence[Entity]] | None = None,
        seed_defaults: bool = True,
    ):
        self._store = store
        self._defaults = dict(defaults or {})
        self._seed_defaults = seed_defaults
        self._listeners: list[ChangeListener] = []
        self._lock = asyncio.Lock()
        self.loaded = False

        self.materials: EntityCollection[Material] = EntityCollection(
            CollectionKey.MATERIALS, Material, "Material"
        )
        self.sales: EntityCollection[Sale] = EntityCollection(
            CollectionKey.SALES, Sale, "Sale"
        )
        self.boqs: EntityCollection[BOQ] = EntityCollection(
            CollectionKey.BOQS, BOQ, "BOQ"
        )
        self.productions: EntityCollection[Production] = EntityCollection(
            CollectionKey.PRODUCTIONS, Production, "Production"
        )
        self.stock_movements: EntityCollection[StockMovement] = EntityCollection(
            CollectionKey.STOCK_MOVEMENTS, StockMovement, "StockMovement"
        )
        self.customers: EntityCollection[Customer] = EntityCollection(
            CollectionKey.CUSTOMERS, Customer, "Customer"
        )
        self._collections: dict[CollectionKey, EntityCollection] = {
            c.key: c
            for c in (
                self.materials,
                self.sales,
                self.boqs,
                self.productions,
                self.stock_movements,
                self.customers,
            )
        }

    @property
    def store(self) -> IKeyValueStore:
        return self._store

    def collection(self, key: CollectionKey) -> EntityCollection:
        return self._collections[key]

    # Loading

    async def load(self) -> list[str]:
        """
        Hydrate all collections from the store.

        Never raises: read or parse failures fall back to the built-in
        defaults for that collection and are reported as warnings.

        Returns:
            Non-fatal warnings for the collaborator
        """
        warnings: list[str] = []

        if self._seed_defaults:
            try:
                seeded = await self._store.initialize_if_empty(
                    {
                        key.value: coll.encode(self._defaults.get(key, []))
                        for key, coll in self._collections.items()
                    }
                )
                if seeded:
                    logger.info("store_seeded", keys=[k.value for k in self._collections])
            except PersistenceError as e:
                logger.warning("store_seed_failed", error=e.message)
                warnings.append(f"Could not seed storage: {e.message}")

        missing: list[CollectionKey] = []
        for key, coll in self._collections.items():
            try:
                raw = await self._store.get(key.value)
            except PersistenceError as e:
                logger.warning("collection_load_failed", key=key.value, error=e.message)
                warnings.append(f"Using built-in {key.value}: {e.message}")
                coll._swap(self._defaults.get(key, []))
                continue

            if raw is None:
                missing.append(key)
                coll._swap([])
                continue

            try:
                coll._swap(coll.decode(raw))
            except ValidationError as e:
                logger.warning(
                    "collection_parse_failed",
                    key=key.value,
                    errors=e.error_count(),
                )
                warnings.append(f"Stored {key.value} are unreadable, using built-in data")
                coll._swap(self._defaults.get(key, []))

        if self._seed_defaults and missing and CollectionKey(MARKER_KEY) not in missing:
            warnings.extend(await self._repair_partial_seed(missing))

        self.loaded = True
        logger.info(
            "repository_loaded",
            **{key.value: len(coll) for key, coll in self._collections.items()},
            warnings=len(warnings),
        )
        return warnings

    async def _repair_partial_seed(self, missing: list[CollectionKey]) -> list[str]:
        """Write empty collections the marker says should already exist."""
        names = [key.value for key in missing]
        logger.warning("partial_seed_detected", missing=names)
        try:
            await self._store.set_many({name: "[]" for name in names})
        except PersistenceError as e:
            return [f"Storage is missing {', '.join(names)} and could not be repaired: {e.message}"]
        return [f"Storage was missing {', '.join(names)}; recreated empty"]

    # Writes

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a listener for committed changes; returns unsubscribe."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["WriteTransaction"]:
        """
        Hold the write lock across a read-modify-commit sequence.

        Collections read inside the block cannot change until it ends,
        so new lists built from them are never stale when committed.

        Usage:
            async with repository.transaction() as tx:
                material = repository.materials.get_by_id(material_id)
                await tx.commit({...})
        """
        async with self._lock:
            tx = WriteTransaction(self)
            try:
                yield tx
            finally:
                tx.closed = True

    async def commit(self, changes: Mapping[CollectionKey, Sequence[Entity]]) -> None:
        """
        Persist whole collections in one batch under the write lock.

        ``changes`` must not be derived from state read before the call;
        use ``transaction()`` for read-modify-commit.

        Raises:
            PersistenceError: nothing was changed in memory
        """
        async with self.transaction() as tx:
            await tx.commit(changes)

    async def _write(self, changes: Mapping[CollectionKey, Sequence[Entity]]) -> None:
        """Persist, then swap in memory. Caller holds the write lock."""
        payload = {
            key.value: self._collections[key].encode(items)
            for key, items in changes.items()
        }
        await self._store.set_many(payload)
        for key, items in changes.items():
            self._collections[key]._swap(items)
        logger.debug(
            "collections_persisted",
            sizes={key.value: len(items) for key, items in changes.items()},
        )
        self._notify(frozenset(changes))

    def _notify(self, keys: frozenset[CollectionKey]) -> None:
        for listener in list(self._listeners):
            try:
                listener(keys)
            except Exception:
                logger.exception("change_listener_failed")

    async def add(self, key: CollectionKey, entity: T) -> T:
        """Store a new entity under a freshly generated id."""
        coll = self._collections[key]
        update: dict = {"id": new_id()}
        if isinstance(entity, Material):
            update["last_updated"] = utc_now()
        created = entity.model_copy(update=update, deep=True)
        async with self.transaction() as tx:
            await tx.commit({key: coll.with_appended(created)})
        logger.info("entity_added", collection=key.value, entity_id=created.id)
        return created.model_copy(deep=True)

    async def update(self, key: CollectionKey, entity: T) -> T:
        """
        Replace the stored entity with the same id.

        Raises:
            EntityNotFoundError: unknown id
        """
        coll = self._collections[key]
        updated = entity.model_copy(deep=True)
        if isinstance(updated, Material):
            updated = updated.model_copy(update={"last_updated": utc_now()})
        async with self.transaction() as tx:
            if updated.id is None or coll.index_of(updated.id) is None:
                raise EntityNotFoundError(coll.label, updated.id or "")
            await tx.commit({key: coll.with_replaced(updated)})
        logger.info("entity_updated", collection=key.value, entity_id=updated.id)
        return updated.model_copy(deep=True)

    async def delete(self, key: CollectionKey, entity_id: str) -> Entity | None:
        """Remove an entity; returns it, or None when it did not exist."""
        coll = self._collections[key]
        async with self.transaction() as tx:
            existing = coll.get_by_id(entity_id)
            if existing is None:
                logger.debug("entity_delete_skipped", collection=key.value, entity_id=entity_id)
                return None
            await tx.commit({key: coll.without(entity_id)})
        logger.info("entity_deleted", collection=key.value, entity_id=entity_id)
        return existing

    # Queries

    def low_stock_materials(self) -> list[Material]:
        """Materials at or below their reorder threshold."""
        return self.materials.find(lambda m: m.is_low_stock)

    def movements_for_material(self, material_id: str) -> list[StockMovement]:
        return self.stock_movements.find(lambda mv: mv.material_id == material_id)

    def movements_for_reference(self, reference_id: str) -> list[StockMovement]:
        return self.stock_movements.find(lambda mv: mv.reference_id == reference_id)


class WriteTransaction:
    """Commit handle for a ``EntityRepository.transaction()`` block."""

    def __init__(self, repository: EntityRepository):
        self._repository = repository
        self.closed = False

    async def commit(self, changes: Mapping[CollectionKey, Sequence[Entity]]) -> None:
        """
        Persist whole collections in one batch, then swap them in memory.

        Raises:
            PersistenceError: nothing was changed in memory
        """
        if self.closed:
            raise RuntimeError("transaction already ended")
        await self._repository._write(changes)
