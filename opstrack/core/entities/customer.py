"""Customer reference data."""

from pydantic import Field

from opstrack.core.entities.base import Entity


class Customer(Entity):
    """A sales customer. Pure reference data."""

    name: str = Field(..., min_length=1)
    contact: str = ""
    address: str | None = None
