"""
Core business logic services.

Layer-pure services that depend only on:
- opstrack/core/entities/*
- opstrack/core/interfaces/*
- opstrack/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from opstrack.core.services.analytics import (
    UNCATEGORIZED,
    build_dashboard_summary,
    inventory_value_by_category,
    movement_type_counts,
    movements_in_range,
    sales_in_date_range,
)
from opstrack.core.services.entity_repository import (
    CollectionKey,
    EntityCollection,
    EntityRepository,
    WriteTransaction,
)
from opstrack.core.services.event_orchestrator import (
    BusinessEventOrchestrator,
    EventOutcome,
)
from opstrack.core.services.ledger_audit import (
    LedgerAuditor,
    LedgerAuditReport,
    LedgerDiscrepancy,
)
from opstrack.core.services.numbering import DisplayNumberAllocator
from opstrack.core.services.stock_ledger import (
    LedgerPosting,
    MaterialCorrection,
    PostingStatus,
    StockLedgerService,
)

__all__ = [
    # Repository
    "CollectionKey",
    "EntityCollection",
    "EntityRepository",
    "WriteTransaction",
    # Ledger
    "StockLedgerService",
    "MaterialCorrection",
    "LedgerPosting",
    "PostingStatus",
    # Orchestration
    "BusinessEventOrchestrator",
    "EventOutcome",
    "DisplayNumberAllocator",
    # Audit
    "LedgerAuditor",
    "LedgerAuditReport",
    "LedgerDiscrepancy",
    # Analytics
    "build_dashboard_summary",
    "sales_in_date_range",
    "movements_in_range",
    "movement_type_counts",
    "inventory_value_by_category",
    "UNCATEGORIZED",
]
