"""Production order entities."""

from datetime import datetime

from pydantic import Field

from opstrack.core.entities.base import Entity, Status, new_id, utc_now


class ProductionMaterial(Entity):
    """Planned and (once known) actual consumption of one material."""

    id: str | None = Field(default_factory=new_id)
    material_id: str = Field(..., min_length=1)
    material_name: str = ""
    planned_quantity: float = Field(..., gt=0)
    actual_quantity: float | None = Field(default=None, ge=0)
    unit: str = ""

    @property
    def has_actual(self) -> bool:
        """Consumption is known (a zero actual posts nothing)."""
        return bool(self.actual_quantity)


class Production(Entity):
    """A production order consuming materials."""

    production_number: str = ""  # allocated on add when blank
    description: str = Field(..., min_length=1)
    start_date: datetime = Field(default_factory=utc_now)
    end_date: datetime | None = None
    status: Status = Status.PENDING
    materials: list[ProductionMaterial] = Field(..., min_length=1)
    notes: str | None = None

    @property
    def consumes_stock(self) -> bool:
        """In-progress and completed productions deplete inventory."""
        return self.status in (Status.IN_PROGRESS, Status.COMPLETED)
