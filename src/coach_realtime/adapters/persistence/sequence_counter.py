"""Named monotonically increasing counters for document numbering."""

from __future__ import annotations


class SequenceCounter:
    """Hands out the next value of named sequences (1, 2, 3, ...).

    Values are never reused, even after the numbered document is deleted.
    """

    def __init__(self) -> None:
        self._values: dict[str, int] = {}

    async def next_value(self, name: str) -> int:
        """Increment the sequence and return its new value."""
        value = self._values.get(name, 0) + 1
        self._values[name] = value
        return value

    async def next_formatted(self, name: str, prefix: str = "", width: int = 4) -> str:
        """Return the next value zero-padded with a prefix, e.g. ``INV-0001``."""
        value = await self.next_value(name)
        return f"{prefix}{value:0{width}d}"
