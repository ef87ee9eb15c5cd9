"""
Built-in sample collections.

Used to seed an empty store and as fallback when a stored collection
cannot be read. Generated from a fixed seed so every run sees the same
data, and ledger-consistent: each material's movements chain from its
opening stock to its current quantity.
"""

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from opstrack.core.entities import (
    BOQ,
    BOQItem,
    Customer,
    Entity,
    Material,
    MovementType,
    Production,
    ProductionMaterial,
    Sale,
    SaleItem,
    Status,
    StockMovement,
    new_id,
    utc_now,
)
from opstrack.core.services.entity_repository import CollectionKey

# name, opening quantity, min quantity, unit, price, category
_MATERIALS = [
    ("Cement", 150, 50, "bags", 7.5, "Construction"),
    ("Steel Bars", 300, 100, "pcs", 15, "Construction"),
    ("Paint", 45, 20, "gallons", 25, "Finishing"),
    ("Bricks", 2500, 1000, "pcs", 0.75, "Construction"),
    ("Timber", 120, 50, "boards", 35, "Construction"),
    ("Sand", 18, 20, "cubic meters", 45, "Construction"),
    ("Gravel", 25, 15, "cubic meters", 50, "Construction"),
    ("Tiles", 750, 200, "boxes", 30, "Finishing"),
    ("PVC Pipes", 180, 50, "pcs", 12, "Plumbing"),
    ("Electrical Wires", 500, 200, "meters", 2.5, "Electrical"),
]

_CUSTOMERS = [
    ("ABC Construction Co.", "555-1234", "123 Builder St, Construction City"),
    ("XYZ Developers", "555-5678", "456 Developer Ave, Tech Town"),
    ("Acme Building Supplies", "555-9012", "789 Supply Rd, Warehouse District"),
    ("City Housing Authority", "555-3456", "101 Government Blvd, City Center"),
]

# Never drawn for sales/productions so the demo keeps a low-stock item
_LOW_STOCK_DEMO = "Sand"


@dataclass
class SampleData:
    materials: list[Material] = field(default_factory=list)
    sales: list[Sale] = field(default_factory=list)
    boqs: list[BOQ] = field(default_factory=list)
    productions: list[Production] = field(default_factory=list)
    stock_movements: list[StockMovement] = field(default_factory=list)
    customers: list[Customer] = field(default_factory=list)

    def as_collections(self) -> dict[CollectionKey, list[Entity]]:
        return {
            CollectionKey.MATERIALS: list(self.materials),
            CollectionKey.SALES: list(self.sales),
            CollectionKey.BOQS: list(self.boqs),
            CollectionKey.PRODUCTIONS: list(self.productions),
            CollectionKey.STOCK_MOVEMENTS: list(self.stock_movements),
            CollectionKey.CUSTOMERS: list(self.customers),
        }


class _Replay:
    """Applies sample movements to opening stock, ledger style."""

    def __init__(self, materials: list[Material]):
        self.quantities = {m.id: m.current_quantity for m in materials}
        self.names = {m.id: m.name for m in materials}
        self.movements: list[StockMovement] = []

    def post(
        self,
        material_id: str,
        quantity: float,
        movement_type: MovementType,
        when: datetime,
        reference_id: str | None = None,
        notes: str | None = None,
    ) -> None:
        before = self.quantities[material_id]
        after = before + quantity
        self.quantities[material_id] = after
        self.movements.append(
            StockMovement(
                id=new_id(),
                material_id=material_id,
                material_name=self.names[material_id],
                type=movement_type,
                quantity=quantity,
                before_quantity=before,
                after_quantity=after,
                date=when,
                reference_id=reference_id,
                notes=notes,
            )
        )


def build_sample_data(seed: int = 2024, now: datetime | None = None) -> SampleData:
    """Build the sample collections."""
    rng = random.Random(seed)
    now = now or utc_now()

    def days_ago(days: int = 30) -> datetime:
        return now - timedelta(days=rng.randrange(days), hours=rng.randrange(24))

    materials = [
        Material(
            id=new_id(),
            name=name,
            current_quantity=qty,
            min_quantity=min_qty,
            unit=unit,
            price_per_unit=price,
            category=category,
            last_updated=days_ago(),
        )
        for name, qty, min_qty, unit, price, category in _MATERIALS
    ]
    customers = [
        Customer(id=new_id(), name=name, contact=contact, address=address)
        for name, contact, address in _CUSTOMERS
    ]
    tradeable = [m for m in materials if m.name != _LOW_STOCK_DEMO]
    replay = _Replay(materials)

    events: list[tuple[datetime, MovementType, str, float, str | None, str | None]] = []
    for _ in range(10):
        material = rng.choice(tradeable)
        events.append(
            (days_ago(), MovementType.RECEIPT, material.id, rng.randint(10, 60), None,
             "Regular stock delivery")
        )

    statuses = [Status.PENDING, Status.COMPLETED, Status.CANCELLED]
    sales = []
    for i in range(12):
        customer = rng.choice(customers)
        items = []
        for material in rng.sample(tradeable, rng.randint(1, 3)):
            items.append(
                SaleItem(
                    material_id=material.id,
                    material_name=material.name,
                    quantity=rng.randint(1, 20),
                    unit_price=material.price_per_unit,
                )
            )
        sale = Sale(
            id=new_id(),
            order_number=f"SO-{1000 + i}",
            customer_id=customer.id,
            customer_name=customer.name,
            date=days_ago(),
            status=rng.choice(statuses),
            items=items,
            notes="Priority order" if i % 5 == 0 else None,
        )
        sales.append(sale)
        if sale.consumes_stock:
            for item in sale.items:
                events.append(
                    (sale.date, MovementType.SALE, item.material_id, -item.quantity, sale.id,
                     f"Sale Order: {sale.order_number}")
                )

    boqs = []
    for i in range(6):
        items = [
            BOQItem(
                material_id=material.id,
                material_name=material.name,
                quantity=rng.randint(10, 60),
                unit=material.unit,
                unit_price=material.price_per_unit,
                wastage_factor=round(1.05 + rng.random() * 0.1, 2),
            )
            for material in rng.sample(materials, rng.randint(2, 5))
        ]
        boqs.append(
            BOQ(
                id=new_id(),
                project_name=f"Project {chr(65 + i)}",
                date=days_ago(),
                status=rng.choice(statuses),
                items=items,
                notes="High priority project" if i % 3 == 0 else None,
            )
        )

    productions = []
    for i in range(8):
        status = (
            Status.PENDING if i % 4 == 0 else Status.IN_PROGRESS if i % 3 == 0 else Status.COMPLETED
        )
        lines = []
        for material in rng.sample(tradeable, rng.randint(2, 4)):
            planned = rng.randint(5, 30)
            actual = None if status == Status.PENDING else planned + rng.randint(-3, 2)
            lines.append(
                ProductionMaterial(
                    material_id=material.id,
                    material_name=material.name,
                    planned_quantity=planned,
                    actual_quantity=actual,
                    unit=material.unit,
                )
            )
        start = days_ago()
        production = Production(
            id=new_id(),
            production_number=f"PO-{2000 + i}",
            description=f"Production batch {i + 1}",
            start_date=start,
            end_date=(
                start + timedelta(days=rng.randint(1, 7))
                if status == Status.COMPLETED
                else None
            ),
            status=status,
            materials=lines,
            notes="Quality inspection required" if i % 5 == 0 else None,
        )
        productions.append(production)
        if production.consumes_stock:
            for line in production.materials:
                if line.has_actual:
                    events.append(
                        (start, MovementType.PRODUCTION_CONSUMPTION, line.material_id,
                         -(line.actual_quantity or 0.0), production.id,
                         f"Production: {production.production_number}")
                    )

    for when, movement_type, material_id, quantity, reference_id, notes in sorted(
        events, key=lambda e: e[0]
    ):
        replay.post(material_id, quantity, movement_type, when, reference_id, notes)

    for material in materials:
        material.current_quantity = replay.quantities[material.id]

    return SampleData(
        materials=materials,
        sales=sales,
        boqs=boqs,
        productions=productions,
        stock_movements=replay.movements,
        customers=customers,
    )
