"""Application layer - facade, use cases and wiring."""

from opstrack.application.dto import Notification, NotificationLevel, OperationResult
from opstrack.application.services import create_repository, open_tracker
from opstrack.application.tracker import OperationsTracker

__all__ = [
    "OperationsTracker",
    "OperationResult",
    "Notification",
    "NotificationLevel",
    "create_repository",
    "open_tracker",
]
