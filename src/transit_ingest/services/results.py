"""Tagged results from per-entity record construction."""

from __future__ import annotations

from typing import Iterable, Optional, TypeVar, Union

from transit_ingest.models import RecordError

T = TypeVar("T")

Built = Optional[Union[T, RecordError]]


def partition_results(results: Iterable[Built[T]]) -> tuple[list[T], list[RecordError]]:
    """Split builder output into records and errors.

    ``None`` marks an entity that was filtered out on purpose and is
    neither a record nor an error.
    """
    records: list[T] = []
    errors: list[RecordError] = []
    for result in results:
        if result is None:
            continue
        if isinstance(result, RecordError):
            errors.append(result)
        else:
            records.append(result)
    return records, errors
