"""Static GTFS normalizer - maps parsed schedule rows to bus records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Union

from transit_ingest.models import Path, RecordError, Route, Stop, Trip

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

# GTFS route_type ordinal for bus service
BUS_ROUTE_TYPE = 3

# zone_id prefix for stops served by buses
BUS_ZONE_PREFIX = "BUS"

# Headsigns of rail and ferry services that share the bus schedule
EXCLUDED_HEADSIGNS = frozenset(
    {
        "CANADA LINE",
        "EXPO LINE",
        "MILLENNIUM LINE",
        "SEABUS",
        "WEST COAST EXPRESS",
    }
)


def _clean_str(value: Any) -> str:
    """Trim whitespace from a value, return empty string for None."""
    if value is None:
        return ""
    return str(value).strip()


def _int(row: Mapping[str, Any], column: str) -> int:
    value = _clean_str(row.get(column))
    try:
        return int(value)
    except ValueError:
        msg = f"invalid {column}={value!r}"
        raise ValueError(msg) from None


def _float(row: Mapping[str, Any], column: str) -> float:
    value = _clean_str(row.get(column))
    try:
        return float(value)
    except ValueError:
        msg = f"invalid {column}={value!r}"
        raise ValueError(msg) from None


def is_excluded_headsign(headsign: str) -> bool:
    """Whether a headsign belongs to a non-bus line.

    A headsign is excluded when some line name starts with it, ignoring
    case, so "EXPO LINE" and "Expo" are excluded while "Expo Line Shuttle"
    is not. A blank headsign is excluded too.
    """
    normalized = headsign.strip().upper()
    return any(name.startswith(normalized) for name in EXCLUDED_HEADSIGNS)


class GtfsNormalizer:
    """Builds bus records from static GTFS rows.

    Each builder returns the record, ``None`` when the row is not bus
    service, or a RecordError when the row is malformed.
    """

    @staticmethod
    def build_trip(row: Mapping[str, Any]) -> Optional[Union[Trip, RecordError]]:
        """Build a Trip from a trips.txt row."""
        headsign = _clean_str(row.get("trip_headsign"))
        if is_excluded_headsign(headsign):
            return None

        try:
            return Trip(
                id=_int(row, "trip_id"),
                route=_int(row, "route_id"),
                headsign=headsign,
                direction=_int(row, "direction_id"),
                block=_int(row, "block_id"),
                path=_int(row, "shape_id"),
            )
        except ValueError as exc:
            return RecordError("trip", _clean_str(row.get("trip_id")), str(exc))

    @staticmethod
    def build_stop(row: Mapping[str, Any]) -> Optional[Union[Stop, RecordError]]:
        """Build a Stop from a stops.txt row."""
        if not _clean_str(row.get("zone_id")).startswith(BUS_ZONE_PREFIX):
            return None

        try:
            return Stop(
                id=_int(row, "stop_id"),
                code=_int(row, "stop_code"),
                name=_clean_str(row.get("stop_name")),
                longitude=_float(row, "stop_lon"),
                latitude=_float(row, "stop_lat"),
            )
        except ValueError as exc:
            return RecordError("stop", _clean_str(row.get("stop_id")), str(exc))

    @staticmethod
    def build_route(row: Mapping[str, Any]) -> Optional[Union[Route, RecordError]]:
        """Build a Route from a routes.txt row.

        ``route_long_name`` lists the termini separated by ``/``.
        """
        route_id = _clean_str(row.get("route_id"))
        try:
            if _int(row, "route_type") != BUS_ROUTE_TYPE:
                return None
            names = _clean_str(row.get("route_long_name")).split("/")
            return Route(
                id=_int(row, "route_id"),
                code=_clean_str(row.get("route_short_name")),
                names=tuple(name.strip() for name in names if name.strip()),
            )
        except ValueError as exc:
            return RecordError("route", route_id, str(exc))

    @staticmethod
    def group_paths(rows: Iterable[Mapping[str, Any]]) -> list[Union[Path, RecordError]]:
        """Assemble shapes.txt points into one Path per shape id.

        Rows must already be ordered by shape id. A path is emitted each
        time the shape id changes; a terminal sentinel flushes the last one.
        """
        terminal: dict[str, Any] = {}
        unset = object()

        results: list[Union[Path, RecordError]] = []
        current: Any = unset
        points: list[tuple[float, float]] = []
        problem: str | None = None

        for row in [*rows, terminal]:
            shape_id = None if row is terminal else _clean_str(row.get("shape_id"))

            if shape_id != current:
                if current is not unset:
                    results.append(_finish_path(current, points, problem))
                current, points, problem = shape_id, [], None

            if row is terminal:
                break

            try:
                points.append((_float(row, "shape_pt_lon"), _float(row, "shape_pt_lat")))
            except ValueError as exc:
                problem = problem or str(exc)

        return results


def _finish_path(
    shape_id: str, points: list[tuple[float, float]], problem: str | None
) -> Union[Path, RecordError]:
    if problem:
        return RecordError("path", shape_id, problem)
    try:
        return Path(id=int(shape_id), points=tuple(points))
    except ValueError:
        return RecordError("path", shape_id, f"invalid shape_id={shape_id!r}")
