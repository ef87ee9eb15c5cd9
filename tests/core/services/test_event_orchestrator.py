"""Tests for BusinessEventOrchestrator."""

import asyncio

import pytest

from opstrack.core.entities import (
    BOQ,
    BOQItem,
    Material,
    MovementType,
    Production,
    ProductionMaterial,
    Sale,
    SaleItem,
    Status,
)
from opstrack.core.exceptions import EntityNotFoundError, PersistenceError, ValidationError
from opstrack.core.services import (
    BusinessEventOrchestrator,
    CollectionKey,
    DisplayNumberAllocator,
    LedgerAuditor,
    StockLedgerService,
)
from opstrack.core.services.event_orchestrator import MANUAL_CORRECTION_NOTE


def _sale(customer_id: str, *lines: tuple[str, float], status=Status.PENDING) -> Sale:
    return Sale(
        customer_id=customer_id,
        status=status,
        items=[SaleItem(material_id=m, quantity=q, unit_price=10) for m, q in lines],
    )


def _production(*lines: tuple[str, float, float | None], status=Status.PENDING) -> Production:
    return Production(
        description="Concrete batch",
        status=status,
        materials=[
            ProductionMaterial(material_id=m, planned_quantity=p, actual_quantity=a)
            for m, p, a in lines
        ],
    )


@pytest.fixture
def transition_orchestrator(repository, ledger) -> BusinessEventOrchestrator:
    return BusinessEventOrchestrator(
        repository,
        ledger,
        sale_numbers=DisplayNumberAllocator("SO-"),
        production_numbers=DisplayNumberAllocator("PO-"),
        post_on_status_transition=True,
    )


class TestSales:
    """Sale lifecycle and its stock effects."""

    async def test_completed_sale_posts_movement(
        self, repository, orchestrator, make_material, make_customer
    ):
        material = await make_material(current_quantity=100)
        customer = await make_customer()

        outcome = await orchestrator.create_sale(
            _sale(customer.id, (material.id, 10), status=Status.COMPLETED)
        )

        assert len(outcome.movements) == 1
        movement = outcome.movements[0]
        assert movement.type == MovementType.SALE
        assert movement.quantity == -10
        assert movement.before_quantity == 100
        assert movement.after_quantity == 90
        assert movement.reference_id == outcome.entity.id
        assert movement.notes == f"Sale Order: {outcome.entity.order_number}"
        assert repository.materials.get_by_id(material.id).current_quantity == 90

    async def test_pending_sale_posts_nothing(
        self, repository, orchestrator, make_material, make_customer
    ):
        material = await make_material(current_quantity=100)
        customer = await make_customer()

        outcome = await orchestrator.create_sale(_sale(customer.id, (material.id, 10)))

        assert outcome.postings == []
        assert len(repository.stock_movements) == 0
        assert repository.materials.get_by_id(material.id).current_quantity == 100

    async def test_items_for_same_material_chain(
        self, repository, orchestrator, make_material, make_customer
    ):
        """Two lines for one material: 50 -> 45 -> 42."""
        material = await make_material(current_quantity=50)
        customer = await make_customer()

        outcome = await orchestrator.create_sale(
            _sale(customer.id, (material.id, 5), (material.id, 3), status=Status.COMPLETED)
        )

        first, second = outcome.movements
        assert (first.before_quantity, first.after_quantity) == (50, 45)
        assert (second.before_quantity, second.after_quantity) == (45, 42)
        assert repository.materials.get_by_id(material.id).current_quantity == 42

    async def test_unknown_material_line_is_skipped(
        self, repository, orchestrator, make_material, make_customer
    ):
        material = await make_material(current_quantity=10)
        customer = await make_customer()

        outcome = await orchestrator.create_sale(
            _sale(customer.id, ("ghost", 1), (material.id, 2), status=Status.COMPLETED)
        )

        assert len(outcome.postings) == 2
        assert len(outcome.movements) == 1
        assert outcome.warnings == ["No stock movement posted: material ghost not found"]
        assert repository.materials.get_by_id(material.id).current_quantity == 8

    async def test_order_number_allocated(self, orchestrator, make_material, make_customer):
        material = await make_material()
        customer = await make_customer()

        first = await orchestrator.create_sale(_sale(customer.id, (material.id, 1)))
        second = await orchestrator.create_sale(_sale(customer.id, (material.id, 1)))

        assert first.entity.order_number == "SO-1"
        assert second.entity.order_number == "SO-2"

    async def test_given_order_number_kept(self, orchestrator, make_material, make_customer):
        material = await make_material()
        customer = await make_customer()
        sale = _sale(customer.id, (material.id, 1)).model_copy(update={"order_number": "SO-1042"})

        await orchestrator.create_sale(sale)
        outcome = await orchestrator.create_sale(_sale(customer.id, (material.id, 1)))

        assert outcome.entity.order_number == "SO-1043"

    async def test_names_denormalized(self, orchestrator, make_material, make_customer):
        material = await make_material(name="Steel Rebar")
        customer = await make_customer("XYZ Builders")

        outcome = await orchestrator.create_sale(_sale(customer.id, (material.id, 1)))

        assert outcome.entity.customer_name == "XYZ Builders"
        assert outcome.entity.items[0].material_name == "Steel Rebar"

    async def test_unknown_customer_rejected(self, repository, orchestrator, make_material):
        material = await make_material()

        with pytest.raises(ValidationError):
            await orchestrator.create_sale(_sale("nobody", (material.id, 1)))

        assert len(repository.sales) == 0

    async def test_update_to_completed_does_not_post_by_default(
        self, repository, orchestrator, make_material, make_customer
    ):
        material = await make_material(current_quantity=100)
        customer = await make_customer()
        created = await orchestrator.create_sale(_sale(customer.id, (material.id, 10)))

        outcome = await orchestrator.update_sale(
            created.entity.model_copy(update={"status": Status.COMPLETED})
        )

        assert outcome.entity.status == Status.COMPLETED
        assert outcome.postings == []
        assert repository.materials.get_by_id(material.id).current_quantity == 100

    async def test_transition_policy_posts_once(
        self, repository, transition_orchestrator, make_material, make_customer
    ):
        material = await make_material(current_quantity=100)
        customer = await make_customer()
        created = await transition_orchestrator.create_sale(_sale(customer.id, (material.id, 10)))
        completed = created.entity.model_copy(update={"status": Status.COMPLETED})

        first = await transition_orchestrator.update_sale(completed)
        reopened = await transition_orchestrator.update_sale(
            completed.model_copy(update={"status": Status.PENDING})
        )
        again = await transition_orchestrator.update_sale(completed)

        assert len(first.movements) == 1
        assert reopened.postings == []
        assert again.postings == []
        assert repository.materials.get_by_id(material.id).current_quantity == 90

    async def test_update_unknown_sale(self, orchestrator, make_material, make_customer):
        material = await make_material()
        customer = await make_customer()
        sale = _sale(customer.id, (material.id, 1)).model_copy(update={"id": "missing"})

        with pytest.raises(EntityNotFoundError):
            await orchestrator.update_sale(sale)

    async def test_update_recomputes_total_after_items_reassigned(
        self, repository, orchestrator, make_material, make_customer
    ):
        material = await make_material()
        customer = await make_customer()
        created = await orchestrator.create_sale(_sale(customer.id, (material.id, 2)))
        sale = created.entity
        sale.items = [SaleItem(material_id=material.id, quantity=5, unit_price=10)]

        outcome = await orchestrator.update_sale(sale)

        stored = repository.sales.get_by_id(sale.id)
        assert outcome.entity.total_amount == 50
        assert stored.total_amount == 50
        assert stored.total_amount == sum(i.total_price for i in stored.items)

    async def test_update_recomputes_line_totals(
        self, repository, orchestrator, make_material, make_customer
    ):
        material = await make_material()
        customer = await make_customer()
        created = await orchestrator.create_sale(_sale(customer.id, (material.id, 2)))
        sale = created.entity
        sale.items[0].quantity = 3

        await orchestrator.update_sale(sale)

        stored = repository.sales.get_by_id(sale.id)
        assert stored.items[0].total_price == 30
        assert stored.total_amount == 30

    async def test_delete_does_not_restore_stock(
        self, repository, orchestrator, make_material, make_customer
    ):
        material = await make_material(current_quantity=100)
        customer = await make_customer()
        created = await orchestrator.create_sale(
            _sale(customer.id, (material.id, 10), status=Status.COMPLETED)
        )

        deleted = await orchestrator.delete_sale(created.entity.id)

        assert deleted.id == created.entity.id
        assert len(repository.sales) == 0
        assert len(repository.stock_movements) == 1
        assert repository.materials.get_by_id(material.id).current_quantity == 90

    async def test_delete_missing_sale(self, orchestrator):
        assert await orchestrator.delete_sale("missing") is None


class TestProductions:
    """Production lifecycle and its stock effects."""

    async def test_in_progress_posts_actual_quantities(
        self, repository, orchestrator, make_material
    ):
        cement = await make_material("Cement", current_quantity=100)
        sand = await make_material("Sand", current_quantity=50)

        outcome = await orchestrator.create_production(
            _production((cement.id, 10, 8), (sand.id, 5, None), status=Status.IN_PROGRESS)
        )

        assert len(outcome.movements) == 1
        movement = outcome.movements[0]
        assert movement.type == MovementType.PRODUCTION_CONSUMPTION
        assert movement.quantity == -8
        assert movement.notes == f"Production: {outcome.entity.production_number}"
        assert outcome.entity.production_number == "PO-1"
        assert repository.materials.get_by_id(sand.id).current_quantity == 50

    async def test_pending_production_posts_nothing(self, repository, orchestrator, make_material):
        cement = await make_material(current_quantity=100)

        outcome = await orchestrator.create_production(_production((cement.id, 10, 8)))

        assert outcome.postings == []
        assert len(repository.stock_movements) == 0

    async def test_completed_production_stamps_end_date(self, orchestrator, make_material):
        cement = await make_material()

        outcome = await orchestrator.create_production(
            _production((cement.id, 10, 10), status=Status.COMPLETED)
        )

        assert outcome.entity.end_date is not None
        assert len(outcome.movements) == 1

    async def test_complete_production_fills_actuals(
        self, repository, transition_orchestrator, make_material
    ):
        cement = await make_material("Cement", current_quantity=100)
        sand = await make_material("Sand", current_quantity=50)
        created = await transition_orchestrator.create_production(
            _production((cement.id, 10, None), (sand.id, 5, None))
        )

        outcome = await transition_orchestrator.complete_production(
            created.entity.id, actual_quantities={cement.id: 12}
        )

        assert outcome.entity.status == Status.COMPLETED
        assert outcome.entity.end_date is not None
        assert [m.actual_quantity for m in outcome.entity.materials] == [12, 5]
        assert repository.materials.get_by_id(cement.id).current_quantity == 88
        assert repository.materials.get_by_id(sand.id).current_quantity == 45

    async def test_complete_production_without_transition_policy(
        self, repository, orchestrator, make_material
    ):
        cement = await make_material(current_quantity=100)
        created = await orchestrator.create_production(_production((cement.id, 10, None)))

        outcome = await orchestrator.complete_production(created.entity.id)

        assert outcome.entity.status == Status.COMPLETED
        assert outcome.postings == []
        assert repository.materials.get_by_id(cement.id).current_quantity == 100

    async def test_complete_production_rejects_negative_actual(self, orchestrator, make_material):
        cement = await make_material()
        created = await orchestrator.create_production(_production((cement.id, 10, None)))

        with pytest.raises(ValidationError):
            await orchestrator.complete_production(created.entity.id, {cement.id: -1})

    async def test_complete_unknown_production(self, orchestrator):
        with pytest.raises(EntityNotFoundError):
            await orchestrator.complete_production("missing")


class TestBOQs:
    async def test_boq_never_posts(self, repository, orchestrator, make_material):
        material = await make_material(name="Paint", unit="gallons", current_quantity=45)

        boq = await orchestrator.create_boq(
            BOQ(
                project_name="Tower A",
                status=Status.COMPLETED,
                items=[BOQItem(material_id=material.id, quantity=10, unit_price=25)],
            )
        )

        assert boq.items[0].material_name == "Paint"
        assert boq.items[0].unit == "gallons"
        assert len(repository.stock_movements) == 0
        assert repository.materials.get_by_id(material.id).current_quantity == 45

    async def test_update_recomputes_boq_total(self, repository, orchestrator, make_material):
        material = await make_material(name="Paint", unit="gallons")
        boq = await orchestrator.create_boq(
            BOQ(
                project_name="Tower A",
                items=[BOQItem(material_id=material.id, quantity=10, unit_price=25)],
            )
        )
        boq.items = [
            BOQItem(material_id=material.id, quantity=4, unit_price=25, wastage_factor=1.0)
        ]

        await orchestrator.update_boq(boq)

        stored = repository.boqs.get_by_id(boq.id)
        assert stored.total_amount == pytest.approx(100.0)
        assert stored.items[0].unit == "gallons"


class TestMaterials:
    async def test_quantity_edit_posted_as_adjustment(
        self, repository, orchestrator, make_material
    ):
        material = await make_material(current_quantity=100)

        outcome = await orchestrator.update_material(
            material.model_copy(update={"current_quantity": 95, "min_quantity": 30})
        )

        assert outcome.entity.current_quantity == 95
        assert outcome.entity.min_quantity == 30
        movement = outcome.movements[0]
        assert movement.type == MovementType.ADJUSTMENT
        assert movement.quantity == -5
        assert movement.notes == MANUAL_CORRECTION_NOTE
        assert repository.materials.get_by_id(material.id).current_quantity == 95

    async def test_edit_without_quantity_change_posts_nothing(
        self, repository, orchestrator, make_material
    ):
        material = await make_material()

        outcome = await orchestrator.update_material(
            material.model_copy(update={"name": "Portland Cement"})
        )

        assert outcome.postings == []
        assert outcome.entity.name == "Portland Cement"
        assert len(repository.stock_movements) == 0

    async def test_delete_material_keeps_movements(
        self, repository, orchestrator, ledger, make_material
    ):
        material = await make_material()
        await ledger.post_movement(material.id, -1, MovementType.SALE)

        await orchestrator.delete_material(material.id)

        assert repository.materials.get_by_id(material.id) is None
        assert repository.movements_for_material(material.id)[0].material_name == "Cement"

    async def test_failed_quantity_edit_saves_nothing(
        self, repository, orchestrator, memory_store, make_material
    ):
        material = await make_material(current_quantity=100)
        memory_store.fail_writes = True

        with pytest.raises(PersistenceError):
            await orchestrator.update_material(
                material.model_copy(update={"name": "Portland Cement", "current_quantity": 80})
            )

        stored = repository.materials.get_by_id(material.id)
        assert stored.name == "Cement"
        assert stored.current_quantity == 100
        assert len(repository.stock_movements) == 0

    async def test_quantity_edit_is_one_write(
        self, repository, orchestrator, memory_store, make_material
    ):
        material = await make_material(current_quantity=100)
        writes = memory_store.write_count

        await orchestrator.update_material(
            material.model_copy(update={"name": "Portland Cement", "current_quantity": 80})
        )

        assert memory_store.write_count == writes + 1
        stored = repository.materials.get_by_id(material.id)
        assert stored.name == "Portland Cement"
        assert stored.current_quantity == 80


class TestConcurrentWrites:
    """Writes from different services interleaving on a slow store."""

    @pytest.fixture
    def concurrent(self, yielding_repository):
        ledger = StockLedgerService(yielding_repository)
        return (
            BusinessEventOrchestrator(
                yielding_repository,
                ledger,
                sale_numbers=DisplayNumberAllocator("SO-"),
                production_numbers=DisplayNumberAllocator("PO-"),
            ),
            ledger,
        )

    async def _cement(self, repository) -> Material:
        return await repository.add(
            CollectionKey.MATERIALS,
            Material(name="Cement", unit="bags", current_quantity=100, min_quantity=20),
        )

    async def test_posting_survives_concurrent_add(self, yielding_repository, concurrent):
        orchestrator, ledger = concurrent
        cement = await self._cement(yielding_repository)

        await asyncio.gather(
            ledger.post_movement(cement.id, -10, MovementType.SALE),
            orchestrator.add_material(Material(name="Sand", unit="tons", current_quantity=18)),
        )

        assert yielding_repository.materials.get_by_id(cement.id).current_quantity == 90
        assert {m.name for m in yielding_repository.materials.list()} == {"Cement", "Sand"}
        assert LedgerAuditor(yielding_repository).audit().consistent

    async def test_posting_survives_concurrent_edit(self, yielding_repository, concurrent):
        orchestrator, ledger = concurrent
        cement = await self._cement(yielding_repository)

        await asyncio.gather(
            ledger.post_movement(cement.id, -10, MovementType.SALE),
            orchestrator.update_material(cement.model_copy(update={"name": "Portland Cement"})),
        )

        stored = yielding_repository.materials.get_by_id(cement.id)
        movements = yielding_repository.movements_for_material(cement.id)
        assert stored.name == "Portland Cement"
        assert MovementType.SALE in {mv.type for mv in movements}
        assert stored.current_quantity == pytest.approx(100 + sum(mv.quantity for mv in movements))
        assert LedgerAuditor(yielding_repository).audit().consistent

    async def test_posting_survives_concurrent_delete(self, yielding_repository, concurrent):
        orchestrator, ledger = concurrent
        cement = await self._cement(yielding_repository)
        sand = await yielding_repository.add(
            CollectionKey.MATERIALS, Material(name="Sand", unit="tons", current_quantity=18)
        )

        await asyncio.gather(
            ledger.post_movement(cement.id, -10, MovementType.SALE),
            orchestrator.delete_material(sand.id),
        )

        assert yielding_repository.materials.get_by_id(cement.id).current_quantity == 90
        assert yielding_repository.materials.get_by_id(sand.id) is None
