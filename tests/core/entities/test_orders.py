"""Tests for sale, BOQ and production entities."""

import pytest
from pydantic import ValidationError

from opstrack.core.entities import (
    BOQ,
    BOQItem,
    Production,
    ProductionMaterial,
    Sale,
    SaleItem,
    Status,
)


class TestSale:
    def test_item_total(self):
        item = SaleItem(material_id="m1", quantity=4, unit_price=2.5)
        assert item.total_price == 10.0
        assert item.id

    def test_total_amount_is_sum_of_items(self):
        sale = Sale(
            customer_id="c1",
            items=[
                SaleItem(material_id="m1", quantity=2, unit_price=10),
                SaleItem(material_id="m2", quantity=3, unit_price=5),
            ],
        )
        assert sale.total_amount == 35.0
        assert sale.status == Status.PENDING

    def test_total_not_recomputed_live(self):
        """Mutating items after the order is built does not change the total."""
        sale = Sale(customer_id="c1", items=[SaleItem(material_id="m1", quantity=1, unit_price=10)])
        sale.items.append(SaleItem(material_id="m2", quantity=1, unit_price=99))
        assert sale.total_amount == 10.0

    def test_requires_items(self):
        with pytest.raises(ValidationError):
            Sale(customer_id="c1", items=[])

    def test_non_positive_quantity_rejected(self):
        with pytest.raises(ValidationError):
            SaleItem(material_id="m1", quantity=0, unit_price=1)

    def test_consumes_stock_only_when_completed(self):
        items = [SaleItem(material_id="m1", quantity=1)]
        assert Sale(customer_id="c1", items=items, status=Status.COMPLETED).consumes_stock
        assert not Sale(customer_id="c1", items=items, status=Status.PENDING).consumes_stock


class TestBOQ:
    def test_item_total_includes_wastage(self):
        item = BOQItem(material_id="m1", quantity=10, unit_price=2, wastage_factor=1.5)
        assert item.total_price == pytest.approx(30.0)
        assert item.wastage_percent == pytest.approx(50.0)

    def test_default_wastage(self):
        assert BOQItem(material_id="m1", quantity=1).wastage_factor == 1.1

    def test_wastage_below_one_rejected(self):
        with pytest.raises(ValidationError):
            BOQItem(material_id="m1", quantity=1, wastage_factor=0.9)

    def test_total_amount(self):
        boq = BOQ(
            project_name="Project A",
            items=[
                BOQItem(material_id="m1", quantity=10, unit_price=1, wastage_factor=1.0),
                BOQItem(material_id="m2", quantity=5, unit_price=2, wastage_factor=1.2),
            ],
        )
        assert boq.total_amount == pytest.approx(22.0)

    def test_project_name_required(self):
        with pytest.raises(ValidationError):
            BOQ(project_name="", items=[BOQItem(material_id="m1", quantity=1)])


def _line(actual: float | None) -> ProductionMaterial:
    return ProductionMaterial(material_id="m1", planned_quantity=5, actual_quantity=actual)


class TestProduction:
    def test_has_actual(self):
        assert not _line(None).has_actual
        assert _line(4).has_actual
        # zero consumption posts nothing
        assert not _line(0).has_actual

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (Status.PENDING, False),
            (Status.IN_PROGRESS, True),
            (Status.COMPLETED, True),
            (Status.CANCELLED, False),
        ],
    )
    def test_consumes_stock(self, status, expected):
        production = Production(
            description="Batch 1",
            status=status,
            materials=[ProductionMaterial(material_id="m1", planned_quantity=5)],
        )
        assert production.consumes_stock is expected

    def test_storage_form(self):
        production = Production(
            id="p1",
            production_number="PO-1",
            description="Batch 1",
            materials=[ProductionMaterial(material_id="m1", planned_quantity=5)],
        )
        stored = production.to_storage()
        assert stored["productionNumber"] == "PO-1"
        assert stored["materials"][0]["plannedQuantity"] == 5
        assert "actualQuantity" not in stored["materials"][0]
        assert "endDate" not in stored
