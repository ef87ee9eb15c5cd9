"""Request DTOs for stock use cases.

Pydantic v2 models validating collaborator input before it reaches the
ledger.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class ReceiveStockRequest(BaseModel):
    """Request to add stock (RECEIPT or RETURN movement)."""

    material_id: str = Field(..., min_length=1, description="Material ID")
    quantity: float = Field(..., gt=0, description="Quantity received")
    kind: Literal["receipt", "return"] = Field(
        default="receipt",
        description="Supplier delivery or customer return",
    )
    reference_id: str | None = Field(default=None, description="Delivery note, sale id, ...")
    notes: str | None = Field(default=None, description="Additional notes")


class AdjustStockRequest(BaseModel):
    """Request to correct a material's on-hand quantity (ADJUSTMENT).

    Give either the signed ``delta`` or the ``counted_quantity`` from a
    stock take.
    """

    material_id: str = Field(..., min_length=1, description="Material ID")
    delta: float | None = Field(default=None, description="Signed correction")
    counted_quantity: float | None = Field(
        default=None, description="Physically counted quantity"
    )
    notes: str | None = Field(default=None, description="Reason for the correction")

    @model_validator(mode="after")
    def exactly_one_target(self) -> "AdjustStockRequest":
        if (self.delta is None) == (self.counted_quantity is None):
            raise ValueError("provide exactly one of delta or counted_quantity")
        return self


class CompleteProductionRequest(BaseModel):
    """Request to complete a production order."""

    production_id: str = Field(..., min_length=1)
    actual_quantities: dict[str, float] = Field(
        default_factory=dict,
        description="Actual consumption keyed by production line id or material id",
    )
    end_date: datetime | None = None
