"""Tests for stock ledger entities."""

import pytest
from pydantic import ValidationError

from opstrack.core.entities import MovementType, StockMovement


def _movement(**overrides) -> StockMovement:
    data = {
        "id": "mv1",
        "material_id": "m1",
        "material_name": "Cement",
        "type": MovementType.SALE,
        "quantity": -10,
        "before_quantity": 100,
        "after_quantity": 90,
    }
    data.update(overrides)
    return StockMovement(**data)


class TestMovementType:
    def test_values(self):
        assert MovementType.RECEIPT == "RECEIPT"
        assert MovementType.PRODUCTION_CONSUMPTION == "PRODUCTION_CONSUMPTION"

    def test_sign_convention(self):
        assert MovementType.RECEIPT.sign == 1
        assert MovementType.RETURN.sign == 1
        assert MovementType.SALE.sign == -1
        assert MovementType.PRODUCTION_CONSUMPTION.sign == -1
        assert MovementType.ADJUSTMENT.sign == 0


class TestStockMovement:
    def test_snapshot_consistency_enforced(self):
        """after_quantity must equal before_quantity + quantity."""
        with pytest.raises(ValidationError):
            _movement(after_quantity=95)

    def test_frozen(self):
        """Movements are immutable once created."""
        movement = _movement()
        with pytest.raises(ValidationError):
            movement.quantity = -20  # type: ignore[misc]

    def test_optional_fields(self):
        movement = _movement()
        assert movement.reference_id is None
        assert movement.notes is None
        assert "referenceId" not in movement.to_storage()

    def test_storage_form(self):
        stored = _movement(reference_id="s1", notes="Sale Order: SO-1").to_storage()
        assert stored["type"] == "SALE"
        assert stored["beforeQuantity"] == 100
        assert stored["afterQuantity"] == 90
        assert stored["referenceId"] == "s1"
