"""Sales order domain entities."""

from datetime import datetime

from pydantic import Field, model_validator

from opstrack.core.entities.base import Entity, Status, new_id, utc_now


class SaleItem(Entity):
    """A single line on a sales order."""

    id: str | None = Field(default_factory=new_id)
    material_id: str = Field(..., min_length=1)
    material_name: str = ""
    quantity: float = Field(..., gt=0)
    unit_price: float = Field(default=0.0, ge=0)
    total_price: float = 0.0

    @model_validator(mode="after")
    def compute_line(self) -> "SaleItem":
        """total_price = quantity * unit_price."""
        self.total_price = self.quantity * self.unit_price
        return self


class Sale(Entity):
    """
    A sales order.

    total_amount is recomputed from the lines whenever the order is
    validated, and every save revalidates it.
    """

    order_number: str = ""  # allocated on add when blank
    customer_id: str = Field(..., min_length=1)
    customer_name: str = ""
    date: datetime = Field(default_factory=utc_now)
    status: Status = Status.PENDING
    items: list[SaleItem] = Field(..., min_length=1)
    total_amount: float = 0.0
    notes: str | None = None

    @model_validator(mode="after")
    def compute_totals(self) -> "Sale":
        """total_amount = sum of item totals."""
        self.total_amount = sum(i.total_price for i in self.items)
        return self

    @property
    def consumes_stock(self) -> bool:
        """Completed sales deplete inventory."""
        return self.status == Status.COMPLETED
