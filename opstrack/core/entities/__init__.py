"""Core domain entities."""

from opstrack.core.entities.analytics import (
    DashboardSummary,
    MaterialValueSummary,
    ProductionSummary,
    SalesSummary,
)
from opstrack.core.entities.base import Entity, Status, new_id, utc_now
from opstrack.core.entities.boq import BOQ, BOQItem
from opstrack.core.entities.customer import Customer
from opstrack.core.entities.inventory import MovementType, StockMovement
from opstrack.core.entities.material import Material
from opstrack.core.entities.production import Production, ProductionMaterial
from opstrack.core.entities.sale import Sale, SaleItem

__all__ = [
    # Base
    "Entity",
    "Status",
    "new_id",
    "utc_now",
    # Inventory
    "Material",
    "MovementType",
    "StockMovement",
    # Sales
    "Customer",
    "Sale",
    "SaleItem",
    # Planning
    "BOQ",
    "BOQItem",
    # Production
    "Production",
    "ProductionMaterial",
    # Analytics
    "DashboardSummary",
    "MaterialValueSummary",
    "SalesSummary",
    "ProductionSummary",
]
