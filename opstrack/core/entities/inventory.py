"""Stock ledger domain entities."""

import math
from datetime import datetime
from enum import Enum

from pydantic import ConfigDict, Field, model_validator

from opstrack.core.entities.base import Entity, utc_now


class MovementType(str, Enum):
    """Cause of a stock movement."""

    RECEIPT = "RECEIPT"
    SALE = "SALE"
    PRODUCTION_CONSUMPTION = "PRODUCTION_CONSUMPTION"
    RETURN = "RETURN"
    ADJUSTMENT = "ADJUSTMENT"

    @property
    def sign(self) -> int:
        """Required sign of the quantity delta (0 = either)."""
        if self in (MovementType.RECEIPT, MovementType.RETURN):
            return 1
        if self in (MovementType.SALE, MovementType.PRODUCTION_CONSUMPTION):
            return -1
        return 0


class StockMovement(Entity):
    """
    Immutable, signed quantity delta applied to a material.

    Negative quantity = depletion, positive = addition.
    """

    model_config = ConfigDict(frozen=True)

    material_id: str
    material_name: str  # snapshot at posting time
    type: MovementType
    quantity: float
    before_quantity: float
    after_quantity: float
    date: datetime = Field(default_factory=utc_now)
    reference_id: str | None = None  # sale/production that caused it
    notes: str | None = None

    @model_validator(mode="after")
    def check_snapshot(self) -> "StockMovement":
        """after_quantity must equal before_quantity + quantity."""
        if not math.isclose(
            self.after_quantity, self.before_quantity + self.quantity, abs_tol=1e-9
        ):
            raise ValueError(
                "after_quantity must equal before_quantity + quantity"
            )
        return self
