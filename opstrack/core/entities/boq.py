"""Bill of Quantities entities. Planning only, never touches stock."""

from datetime import datetime

from pydantic import Field, model_validator

from opstrack.core.entities.base import Entity, Status, new_id, utc_now


class BOQItem(Entity):
    """A required material line with expected wastage."""

    id: str | None = Field(default_factory=new_id)
    material_id: str = Field(..., min_length=1)
    material_name: str = ""
    quantity: float = Field(..., gt=0)
    unit: str = ""
    unit_price: float = Field(default=0.0, ge=0)
    wastage_factor: float = Field(default=1.1, ge=1.0)
    total_price: float = 0.0

    @model_validator(mode="after")
    def compute_line(self) -> "BOQItem":
        """total_price = quantity * unit_price * wastage_factor."""
        self.total_price = self.quantity * self.unit_price * self.wastage_factor
        return self

    @property
    def wastage_percent(self) -> float:
        return (self.wastage_factor - 1) * 100


class BOQ(Entity):
    """A project's bill of quantities."""

    project_name: str = Field(..., min_length=1)
    date: datetime = Field(default_factory=utc_now)
    status: Status = Status.PENDING
    items: list[BOQItem] = Field(..., min_length=1)
    total_amount: float = 0.0
    notes: str | None = None

    @model_validator(mode="after")
    def compute_totals(self) -> "BOQ":
        self.total_amount = sum(i.total_price for i in self.items)
        return self
