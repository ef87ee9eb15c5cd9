"""Data transfer objects for the application layer."""

from opstrack.application.dto.requests import (
    AdjustStockRequest,
    CompleteProductionRequest,
    ReceiveStockRequest,
)
from opstrack.application.dto.results import Notification, NotificationLevel, OperationResult

__all__ = [
    "ReceiveStockRequest",
    "AdjustStockRequest",
    "CompleteProductionRequest",
    "OperationResult",
    "Notification",
    "NotificationLevel",
]
