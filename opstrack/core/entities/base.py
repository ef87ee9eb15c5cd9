"""Shared base model, enums and helpers for domain entities."""

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def new_id() -> str:
    """Generate an opaque entity id."""
    return uuid.uuid4().hex


class Status(str, Enum):
    """Lifecycle status shared by sales, BOQs and productions."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    IN_PROGRESS = "IN_PROGRESS"


class Entity(BaseModel):
    """
    Base for all persisted entities.

    Fields are snake_case in Python and camelCase in the persisted JSON.
    ``id`` is None until the repository assigns one.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str | None = None

    def to_storage(self) -> dict:
        """Serialize to the JSON-ready, camelCase storage form."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
