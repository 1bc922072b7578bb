"""Typed transit records produced by the ingestion pipeline."""

from transit_ingest.models.transit import (
    Alert,
    Path,
    Position,
    Record,
    RecordError,
    Route,
    Stop,
    Trip,
)

__all__ = [
    "Alert",
    "Path",
    "Position",
    "Record",
    "RecordError",
    "Route",
    "Stop",
    "Trip",
]
