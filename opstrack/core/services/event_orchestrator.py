"""
Business Event Orchestrator.

Decides, for every entity mutation, whether stock has to move and issues
the ledger postings in order. Rules:

- A sale created as COMPLETED posts one SALE movement per item.
- A production created as IN_PROGRESS or COMPLETED posts one
  PRODUCTION_CONSUMPTION movement per material with an actual quantity.
- Updates and deletes post nothing, unless ``post_on_status_transition``
  is enabled; then an update that moves a sale/production into a
  consuming status posts once (never when movements for it exist).
- BOQs never post.
- A material edit that changes current_quantity is posted as an
  ADJUSTMENT; the quantity itself is never written directly.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

from opstrack.config import get_logger
from opstrack.core.entities import (
    BOQ,
    Customer,
    Entity,
    Material,
    MovementType,
    Production,
    Sale,
    StockMovement,
    Status,
    utc_now,
)
from opstrack.core.exceptions import (
    EntityNotFoundError,
    ValidationError,
)
from opstrack.core.services.entity_repository import CollectionKey, EntityRepository
from opstrack.core.services.numbering import DisplayNumberAllocator
from opstrack.core.services.stock_ledger import LedgerPosting, StockLedgerService

logger = get_logger(__name__)

E = TypeVar("E", bound=Entity)

MANUAL_CORRECTION_NOTE = "Manual quantity correction"


@dataclass
class EventOutcome(Generic[E]):
    """Saved entity plus the ledger postings its mutation triggered."""

    entity: E
    postings: list[LedgerPosting] = field(default_factory=list)

    @property
    def movements(self) -> list[StockMovement]:
        return [p.movement for p in self.postings if p.movement is not None]

    @property
    def warnings(self) -> list[str]:
        return [
            f"No stock movement posted: material {p.material_id} not found"
            for p in self.postings
            if not p.posted
        ]


class BusinessEventOrchestrator:
    """Binds entity mutations to Stock Ledger postings."""

    def __init__(
        self,
        repository: EntityRepository,
        ledger: StockLedgerService,
        sale_numbers: DisplayNumberAllocator,
        production_numbers: DisplayNumberAllocator,
        post_on_status_transition: bool = False,
    ):
        self._repository = repository
        self._ledger = ledger
        self._sale_numbers = sale_numbers
        self._production_numbers = production_numbers
        self._post_on_status_transition = post_on_status_transition

    # Materials

    async def add_material(self, material: Material) -> EventOutcome[Material]:
        saved = await self._repository.add(CollectionKey.MATERIALS, material)
        return EventOutcome(entity=saved)

    async def update_material(self, material: Material) -> EventOutcome[Material]:
        """
        Save a material edit.

        A changed current_quantity is not written as such: the difference
        to the stored quantity is posted as one ADJUSTMENT, committed
        together with the other fields.
        """
        correction = await self._ledger.correct_material(material, MANUAL_CORRECTION_NOTE)
        postings = [correction.posting] if correction.posting else []
        return EventOutcome(entity=correction.material, postings=postings)

    async def delete_material(self, material_id: str) -> Material | None:
        referenced = len(self._repository.movements_for_material(material_id))
        if referenced:
            # Movements keep their material_name snapshot
            logger.warning(
                "material_deleted_with_movements",
                material_id=material_id,
                movements=referenced,
            )
        return await self._repository.delete(CollectionKey.MATERIALS, material_id)

    # Customers

    async def add_customer(self, customer: Customer) -> Customer:
        return await self._repository.add(CollectionKey.CUSTOMERS, customer)

    async def update_customer(self, customer: Customer) -> Customer:
        return await self._repository.update(CollectionKey.CUSTOMERS, customer)

    async def delete_customer(self, customer_id: str) -> Customer | None:
        return await self._repository.delete(CollectionKey.CUSTOMERS, customer_id)

    # Sales

    async def create_sale(self, sale: Sale) -> EventOutcome[Sale]:
        sale = self._resolve_sale(sale)
        if not sale.order_number:
            sale = sale.model_copy(
                update={
                    "order_number": await self._sale_numbers.allocate(
                        s.order_number for s in self._repository.sales.list()
                    )
                }
            )
        saved = await self._repository.add(CollectionKey.SALES, sale)
        logger.info(
            "sale_created",
            sale_id=saved.id,
            order_number=saved.order_number,
            status=saved.status.value,
            total=saved.total_amount,
        )
        postings = await self._post_sale(saved) if saved.consumes_stock else []
        return EventOutcome(entity=saved, postings=postings)

    async def update_sale(self, sale: Sale) -> EventOutcome[Sale]:
        previous = self._require(self._repository.sales.get_by_id(sale.id or ""), "Sale", sale.id)
        saved = await self._repository.update(CollectionKey.SALES, self._resolve_sale(sale))
        postings: list[LedgerPosting] = []
        if self._transition_posts(previous.consumes_stock, saved.consumes_stock, saved.id):
            postings = await self._post_sale(saved)
        elif saved.consumes_stock and not previous.consumes_stock:
            logger.info(
                "sale_completed_without_posting",
                sale_id=saved.id,
                order_number=saved.order_number,
            )
        return EventOutcome(entity=saved, postings=postings)

    async def delete_sale(self, sale_id: str) -> Sale | None:
        # Stock is not restored for deleted sales
        return await self._repository.delete(CollectionKey.SALES, sale_id)

    async def _post_sale(self, sale: Sale) -> list[LedgerPosting]:
        postings = []
        for item in sale.items:
            postings.append(
                await self._ledger.post_movement(
                    item.material_id,
                    -item.quantity,
                    MovementType.SALE,
                    reference_id=sale.id,
                    notes=f"Sale Order: {sale.order_number}",
                )
            )
        return postings

    def _resolve_sale(self, sale: Sale) -> Sale:
        """
        Check the customer, fill denormalized names and rebuild the order.

        Rebuilding through validation recomputes line and order totals,
        which may be stale when items were changed on the instance.
        """
        customer = self._repository.customers.get_by_id(sale.customer_id)
        if customer is None:
            raise ValidationError("customer_id", "unknown customer", sale.customer_id)
        data = sale.model_dump()
        data["customer_name"] = sale.customer_name or customer.name
        for item in data["items"]:
            item["material_name"] = self._material_name(item["material_id"], item["material_name"])
        return Sale.model_validate(data)

    # BOQs

    async def create_boq(self, boq: BOQ) -> BOQ:
        return await self._repository.add(CollectionKey.BOQS, self._resolve_boq(boq))

    async def update_boq(self, boq: BOQ) -> BOQ:
        return await self._repository.update(CollectionKey.BOQS, self._resolve_boq(boq))

    async def delete_boq(self, boq_id: str) -> BOQ | None:
        return await self._repository.delete(CollectionKey.BOQS, boq_id)

    def _resolve_boq(self, boq: BOQ) -> BOQ:
        data = boq.model_dump()
        for item in data["items"]:
            self._fill_material_fields(item)
        return BOQ.model_validate(data)

    # Productions

    async def create_production(self, production: Production) -> EventOutcome[Production]:
        production = self._resolve_production(production)
        if not production.production_number:
            production = production.model_copy(
                update={
                    "production_number": await self._production_numbers.allocate(
                        p.production_number for p in self._repository.productions.list()
                    )
                }
            )
        saved = await self._repository.add(CollectionKey.PRODUCTIONS, production)
        logger.info(
            "production_created",
            production_id=saved.id,
            production_number=saved.production_number,
            status=saved.status.value,
        )
        postings = await self._post_production(saved) if saved.consumes_stock else []
        return EventOutcome(entity=saved, postings=postings)

    async def update_production(self, production: Production) -> EventOutcome[Production]:
        previous = self._require(
            self._repository.productions.get_by_id(production.id or ""), "Production", production.id
        )
        saved = await self._repository.update(
            CollectionKey.PRODUCTIONS, self._resolve_production(production)
        )
        postings: list[LedgerPosting] = []
        if self._transition_posts(previous.consumes_stock, saved.consumes_stock, saved.id):
            postings = await self._post_production(saved)
        return EventOutcome(entity=saved, postings=postings)

    async def complete_production(
        self,
        production_id: str,
        actual_quantities: Mapping[str, float] | None = None,
        end_date: datetime | None = None,
    ) -> EventOutcome[Production]:
        """
        Mark a production COMPLETED through the update path.

        Actual quantities are taken from ``actual_quantities`` (keyed by
        production material id or material id), then the recorded actual,
        then the planned quantity.
        """
        production = self._require(
            self._repository.productions.get_by_id(production_id), "Production", production_id
        )
        actual_quantities = actual_quantities or {}
        materials = []
        for line in production.materials:
            actual = actual_quantities.get(line.id or "")
            if actual is None:
                actual = actual_quantities.get(line.material_id)
            if actual is None:
                actual = line.actual_quantity or line.planned_quantity
            if actual < 0:
                raise ValidationError("actual_quantity", "must be >= 0", actual)
            materials.append(line.model_copy(update={"actual_quantity": actual}))

        completed = production.model_copy(
            update={
                "status": Status.COMPLETED,
                "end_date": end_date or utc_now(),
                "materials": materials,
            }
        )
        return await self.update_production(completed)

    async def delete_production(self, production_id: str) -> Production | None:
        return await self._repository.delete(CollectionKey.PRODUCTIONS, production_id)

    async def _post_production(self, production: Production) -> list[LedgerPosting]:
        postings = []
        for line in production.materials:
            if not line.has_actual:
                continue
            postings.append(
                await self._ledger.post_movement(
                    line.material_id,
                    -(line.actual_quantity or 0.0),
                    MovementType.PRODUCTION_CONSUMPTION,
                    reference_id=production.id,
                    notes=f"Production: {production.production_number}",
                )
            )
        return postings

    def _resolve_production(self, production: Production) -> Production:
        data = production.model_dump()
        for line in data["materials"]:
            self._fill_material_fields(line)
        if data["status"] == Status.COMPLETED and data["end_date"] is None:
            data["end_date"] = utc_now()
        return Production.model_validate(data)

    # Helpers

    def _transition_posts(
        self, was_consuming: bool, is_consuming: bool, entity_id: str | None
    ) -> bool:
        if not self._post_on_status_transition or was_consuming or not is_consuming:
            return False
        if self._repository.movements_for_reference(entity_id or ""):
            logger.warning("transition_posting_skipped", reference_id=entity_id)
            return False
        return True

    def _material_name(self, material_id: str, given: str) -> str:
        if given:
            return given
        material = self._repository.materials.get_by_id(material_id)
        return material.name if material else ""

    def _fill_material_fields(self, line: dict) -> None:
        """Default name and unit of a dumped BOQ/production line from its material."""
        material = self._repository.materials.get_by_id(line["material_id"])
        line["material_name"] = line["material_name"] or (material.name if material else "")
        line["unit"] = line["unit"] or (material.unit if material else "")

    @staticmethod
    def _require(entity: E | None, label: str, entity_id: str | None) -> E:
        if entity is None:
            raise EntityNotFoundError(label, entity_id or "")
        return entity
