"""Human-facing display numbers for sales and production orders."""

import asyncio
import re
from collections.abc import Iterable


class DisplayNumberAllocator:
    """
    Allocates ``<prefix><n>`` numbers (e.g. SO-1001).

    The next number is one above both the highest numeric suffix found in
    the existing records and the highest number this allocator already
    handed out, so numbers never repeat within a process even before the
    owning record is saved.
    """

    def __init__(self, prefix: str):
        self.prefix = prefix
        self._pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        self._issued = 0
        self._lock = asyncio.Lock()

    def parse(self, number: str) -> int | None:
        """Numeric suffix of a display number with this prefix."""
        match = self._pattern.match(number or "")
        return int(match.group(1)) if match else None

    def highest(self, existing: Iterable[str]) -> int:
        values = [n for n in (self.parse(e) for e in existing) if n is not None]
        return max(values, default=0)

    async def allocate(self, existing: Iterable[str]) -> str:
        async with self._lock:
            self._issued = max(self._issued, self.highest(existing)) + 1
            return f"{self.prefix}{self._issued}"
