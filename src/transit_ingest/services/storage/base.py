"""Common contract for write targets."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from transit_ingest.models import Record


class StorageTarget(Protocol):
    """A destination that durably commits a batch of records."""

    name: str

    def locate(self, namespace: str, key: str) -> tuple[str, str]:
        """Map a logical namespace/key onto this target's own addressing."""
        ...

    async def put(self, namespace: str, key: str, *records: Record | Mapping[str, Any]) -> bool:
        """Write ``records`` and report whether anything was written."""
        ...


def to_row(record: Record | Mapping[str, Any]) -> dict[str, Any]:
    """Return the JSON-ready row for a record or plain mapping."""
    if hasattr(record, "to_row"):
        return record.to_row()
    return dict(record)
