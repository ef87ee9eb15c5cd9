"""
Domain exceptions for the OpsTrack core.

Provides specific exception types for different error scenarios.
"""

from typing import Any


class OpsTrackError(Exception):
    """Base exception for all OpsTrack errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for collaborator-facing results."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Storage Exceptions
class StorageError(OpsTrackError):
    """Base exception for storage operations."""

    pass


class PersistenceError(StorageError):
    """Reading from or writing to the persistent store failed."""

    def __init__(self, operation: str, error: str, keys: list[str] | None = None):
        super().__init__(
            f"Persistence error during {operation}: {error}",
            code="PERSISTENCE_ERROR",
            details={"operation": operation, "error": error, "keys": keys or []},
        )


class EntityNotFoundError(StorageError):
    """Referenced entity does not exist in its collection."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            f"{entity} not found: {entity_id}",
            code="ENTITY_NOT_FOUND",
            details={"entity": entity, "entity_id": entity_id},
        )


class MaterialNotFoundError(EntityNotFoundError):
    """Material not found."""

    def __init__(self, material_id: str):
        super().__init__("Material", material_id)
        self.code = "MATERIAL_NOT_FOUND"


# Ledger Exceptions
class LedgerError(OpsTrackError):
    """Base exception for stock ledger operations."""

    pass


class InsufficientStockError(LedgerError):
    """Posting would drive on-hand stock below zero."""

    def __init__(self, material_id: str, requested: float, available: float):
        super().__init__(
            f"Insufficient stock for {material_id}: "
            f"requested {requested}, available {available}",
            code="INSUFFICIENT_STOCK",
            details={
                "material_id": material_id,
                "requested": requested,
                "available": available,
            },
        )


# Validation Exceptions
class ValidationError(OpsTrackError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )


class ConfigurationError(OpsTrackError):
    """Configuration error."""

    pass
