"""Transit domain records.

Records are constructed once per invocation from upstream data and never
mutated afterwards. Each exposes an ``id`` used as the idempotent write key
and, where it has a geography, a well-known text ``location``.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict, computed_field


def format_coordinate(value: float) -> str:
    """Render a coordinate without a trailing ``.0`` for whole numbers."""
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def point_wkt(longitude: float, latitude: float) -> str:
    return f"POINT({format_coordinate(longitude)} {format_coordinate(latitude)})"


def linestring_wkt(points: tuple[tuple[float, float], ...]) -> str:
    coords = ", ".join(f"{format_coordinate(lon)} {format_coordinate(lat)}" for lon, lat in points)
    return f"LINESTRING({coords})"


class _Record(BaseModel):
    """Base for immutable transit records."""

    model_config = ConfigDict(frozen=True)

    row_exclude: ClassVar[frozenset[str]] = frozenset()

    def to_row(self) -> dict[str, Any]:
        """Return a JSON-ready dict for the storage targets."""
        return self.model_dump(mode="json", exclude=set(self.row_exclude))


class Position(_Record):
    """A point-in-time observation of a vehicle on the road."""

    vehicle: int
    trip: int
    route: int
    direction: int
    stop: int
    longitude: float
    latitude: float
    timestamp: int
    # Service date, which may differ from the timestamp date for late-night trips.
    date: datetime.date

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        return f"{self.vehicle}:{self.timestamp}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def location(self) -> str:
        return point_wkt(self.longitude, self.latitude)


class Alert(_Record):
    """A public notice about a bus service disruption."""

    id: int
    text: str
    start: int
    end: int
    routes: tuple[int, ...] = ()
    trips: tuple[int, ...] = ()
    stops: tuple[int, ...] = ()
    cause: str
    effect: str
    severity: str


class Trip(_Record):
    """Bus service at a specific time of day."""

    id: int
    route: int
    headsign: str
    direction: int
    block: int
    path: int


class Route(_Record):
    """A route providing regular bus service."""

    id: int
    code: str
    names: tuple[str, ...]


class Stop(_Record):
    """A bus stop along a route."""

    id: int
    code: int
    name: str
    longitude: float
    latitude: float

    @computed_field  # type: ignore[prop-decorator]
    @property
    def location(self) -> str:
        return point_wkt(self.longitude, self.latitude)


class Path(_Record):
    """Road geometry shared by one or more trips."""

    row_exclude: ClassVar[frozenset[str]] = frozenset({"points"})

    id: int
    points: tuple[tuple[float, float], ...]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def location(self) -> str:
        return linestring_wkt(self.points)


Record = Union[Position, Alert, Trip, Route, Stop, Path]


@dataclass(frozen=True)
class RecordError:
    """Why a single upstream entity or row could not become a record."""

    kind: str
    identifier: str
    message: str

    def __str__(self) -> str:
        return f"{self.kind} {self.identifier or '?'}: {self.message}"
