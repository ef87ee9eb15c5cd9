"""Results and notifications returned to the UI collaborator."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from opstrack.core.exceptions import OpsTrackError

T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """
    Outcome of a facade operation.

    Failed results carry the error code of the exception taxonomy
    (VALIDATION_ERROR, ENTITY_NOT_FOUND, MATERIAL_NOT_FOUND,
    PERSISTENCE_ERROR, INSUFFICIENT_STOCK).
    """

    ok: bool
    value: T | None = None
    error_code: str | None = None
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def success(
        cls, value: T | None = None, warnings: list[str] | None = None
    ) -> "OperationResult[T]":
        return cls(ok=True, value=value, warnings=list(warnings or []))

    @classmethod
    def failure(cls, error: OpsTrackError) -> "OperationResult[T]":
        return cls(
            ok=False,
            error_code=error.code,
            message=error.message,
            details=dict(error.details),
        )

    def unwrap(self) -> T:
        """Value of a successful result; raises on failure."""
        if not self.ok:
            raise OpsTrackError(
                self.message or "operation failed",
                code=self.error_code,
                details=self.details,
            )
        return self.value  # type: ignore[return-value]


class NotificationLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """Transient message for the user (toast)."""

    level: NotificationLevel
    title: str
    message: str
