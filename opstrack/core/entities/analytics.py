"""Dashboard summary read models."""

from pydantic import BaseModel


class MaterialValueSummary(BaseModel):
    total_items: int = 0
    total_value: float = 0.0
    low_stock_items: int = 0


class SalesSummary(BaseModel):
    total_sales: int = 0
    pending_sales: int = 0
    completed_sales: int = 0
    cancelled_sales: int = 0
    total_revenue: float = 0.0  # completed sales only


class ProductionSummary(BaseModel):
    total_productions: int = 0
    in_progress_productions: int = 0
    completed_productions: int = 0
    cancelled_productions: int = 0


class DashboardSummary(BaseModel):
    """Headline numbers across materials, sales and production."""

    materials: MaterialValueSummary
    sales: SalesSummary
    production: ProductionSummary
