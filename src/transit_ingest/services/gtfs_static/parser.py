"""Delimited text parsing with a header row."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from transit_ingest.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

logger = get_logger(__name__)


@dataclass(frozen=True)
class RowError:
    """A single malformed row, numbered from 1 at the header."""

    row: int
    message: str

    def __str__(self) -> str:
        return f"row {self.row}: {self.message}"


class TableParseError(Exception):
    """Raised when one or more rows of a table are malformed.

    Carries every row error found, not only the first.
    """

    def __init__(self, errors: Sequence[RowError], resource: str = "") -> None:
        self.errors = list(errors)
        self.resource = resource
        shown = "; ".join(str(error) for error in self.errors[:10])
        more = f" (+{len(self.errors) - 10} more)" if len(self.errors) > 10 else ""
        super().__init__(f"{len(self.errors)} malformed rows in {resource or 'table'}: {shown}{more}")


def parse(text: str, resource: str = "", delimiter: str = ",") -> list[dict[str, str]]:
    """Parse delimited text into one dict per row, keyed by the header.

    Rows whose fields are all blank are skipped.

    Raises:
        TableParseError: If any row has the wrong number of fields or bad quoting.
    """
    reader = csv.reader(io.StringIO(text), delimiter=delimiter, strict=True)
    header: list[str] | None = None
    rows: list[dict[str, str]] = []
    errors: list[RowError] = []

    while True:
        try:
            fields = next(reader)
        except StopIteration:
            break
        except csv.Error as exc:
            errors.append(RowError(reader.line_num, str(exc)))
            continue

        if not any(field.strip() for field in fields):
            continue

        if header is None:
            header = [name.strip() for name in fields]
            continue

        if len(fields) != len(header):
            errors.append(
                RowError(
                    reader.line_num,
                    f"expected {len(header)} fields, found {len(fields)}",
                )
            )
            continue

        rows.append(dict(zip(header, fields)))

    if errors:
        logger.error("Table parse failed", resource=resource, error_count=len(errors))
        raise TableParseError(errors, resource=resource)

    logger.debug("Table parsed", resource=resource, rows=len(rows))
    return rows


def format_cell(value: Any) -> str:
    """Render one value as the text stored in a delimited cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def unparse(
    rows: Iterable[Mapping[str, Any]],
    columns: Sequence[str] | None = None,
    delimiter: str = ",",
) -> str:
    """Serialize rows to delimited text with a header row.

    Columns default to the keys of the first row, in order. Nested values
    are written as compact JSON. The text carries no types: parsing it back
    yields every value as the string written by ``format_cell``.
    """
    rows = list(rows)
    if columns is None:
        columns = list(rows[0]) if rows else []

    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\r\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow([format_cell(row.get(column)) for column in columns])
    return buffer.getvalue()
