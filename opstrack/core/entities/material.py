"""Material (inventory item) domain entity."""

from datetime import datetime

from pydantic import Field

from opstrack.core.entities.base import Entity, utc_now


class Material(Entity):
    """A trackable inventory item with on-hand quantity and reorder threshold."""

    name: str = Field(..., min_length=1)
    current_quantity: float = 0.0  # may go negative, see StockLedgerService
    min_quantity: float = Field(default=0.0, ge=0)
    unit: str = Field(..., min_length=1)
    price_per_unit: float = Field(default=0.0, ge=0)
    category: str | None = None
    last_updated: datetime = Field(default_factory=utc_now)

    @property
    def total_value(self) -> float:
        """Stock value = current_quantity * price_per_unit."""
        return self.current_quantity * self.price_per_unit

    @property
    def is_low_stock(self) -> bool:
        """At or below the reorder threshold."""
        return self.current_quantity <= self.min_quantity
