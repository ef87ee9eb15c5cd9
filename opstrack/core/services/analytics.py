"""Dashboard figures computed from the repository collections."""

from collections import Counter
from datetime import UTC, date, datetime, time

from opstrack.core.entities import (
    DashboardSummary,
    MaterialValueSummary,
    MovementType,
    ProductionSummary,
    Sale,
    SalesSummary,
    Status,
    StockMovement,
)
from opstrack.core.services.entity_repository import EntityRepository

UNCATEGORIZED = "Uncategorized"


def build_dashboard_summary(repository: EntityRepository) -> DashboardSummary:
    """Headline numbers for materials, sales and production."""
    materials = repository.materials.list()
    sales = repository.sales.list()
    productions = repository.productions.list()

    def count_sales(status: Status) -> int:
        return sum(1 for s in sales if s.status == status)

    def count_productions(status: Status) -> int:
        return sum(1 for p in productions if p.status == status)

    return DashboardSummary(
        materials=MaterialValueSummary(
            total_items=len(materials),
            total_value=sum(m.total_value for m in materials),
            low_stock_items=sum(1 for m in materials if m.is_low_stock),
        ),
        sales=SalesSummary(
            total_sales=len(sales),
            pending_sales=count_sales(Status.PENDING),
            completed_sales=count_sales(Status.COMPLETED),
            cancelled_sales=count_sales(Status.CANCELLED),
            total_revenue=sum(s.total_amount for s in sales if s.status == Status.COMPLETED),
        ),
        production=ProductionSummary(
            total_productions=len(productions),
            in_progress_productions=count_productions(Status.IN_PROGRESS),
            completed_productions=count_productions(Status.COMPLETED),
            cancelled_productions=count_productions(Status.CANCELLED),
        ),
    )


def sales_in_date_range(
    repository: EntityRepository, start: date | datetime, end: date | datetime
) -> list[Sale]:
    """Sales dated within [start, end], inclusive. Plain dates cover whole days."""
    lower, upper = _bounds(start, end)
    return repository.sales.find(lambda s: lower <= _as_utc(s.date) <= upper)


def movements_in_range(
    repository: EntityRepository,
    start: date | datetime,
    end: date | datetime,
    movement_type: MovementType | str | None = None,
) -> list[StockMovement]:
    """Stock movements within [start, end] in posting order, optionally of one type."""
    lower, upper = _bounds(start, end)
    kind = MovementType(movement_type) if movement_type is not None else None
    return repository.stock_movements.find(
        lambda mv: lower <= _as_utc(mv.date) <= upper and (kind is None or mv.type == kind)
    )


def movement_type_counts(
    repository: EntityRepository,
    start: date | datetime | None = None,
    end: date | datetime | None = None,
) -> dict[MovementType, int]:
    """Number of movements per type; only types that occur are listed."""
    if start is None and end is None:
        movements = repository.stock_movements.list()
    else:
        movements = movements_in_range(
            repository, start or datetime.min.replace(tzinfo=UTC), end or datetime.max
        )
    return dict(Counter(mv.type for mv in movements))


def inventory_value_by_category(repository: EntityRepository) -> dict[str, float]:
    """Stock value per category in first-seen order."""
    values: dict[str, float] = {}
    for material in repository.materials.list():
        category = material.category or UNCATEGORIZED
        values[category] = values.get(category, 0.0) + material.total_value
    return values


def _bounds(start: date | datetime, end: date | datetime) -> tuple[datetime, datetime]:
    """UTC bounds; a plain date starts at 00:00 or, as the end, runs to 23:59:59.999999."""
    if not isinstance(start, datetime):
        start = datetime.combine(start, time.min)
    if not isinstance(end, datetime):
        end = datetime.combine(end, time.max)
    return _as_utc(start), _as_utc(end)


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
