"""GTFS-RT normalizer: protobuf entities to Position and Alert records."""

from __future__ import annotations

import time
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Iterable, Optional, TypeVar, Union

from transit_ingest.logging import get_logger
from transit_ingest.models import Alert, Position, RecordError
from transit_ingest.services.results import Built, partition_results

if TYPE_CHECKING:
    from google.transit import gtfs_realtime_pb2  # type: ignore[import-untyped]

logger = get_logger(__name__)

T = TypeVar("T")

# GTFS route_type ordinal for bus service
BUS_ROUTE_TYPE = 3

# Enum lookup maps
CAUSE_MAP = {
    1: "UNKNOWN_CAUSE",
    2: "OTHER_CAUSE",
    3: "TECHNICAL_PROBLEM",
    4: "STRIKE",
    5: "DEMONSTRATION",
    6: "ACCIDENT",
    7: "HOLIDAY",
    8: "WEATHER",
    9: "MAINTENANCE",
    10: "CONSTRUCTION",
    11: "POLICE_ACTIVITY",
    12: "MEDICAL_EMERGENCY",
}

EFFECT_MAP = {
    1: "NO_SERVICE",
    2: "REDUCED_SERVICE",
    3: "SIGNIFICANT_DELAYS",
    4: "DETOUR",
    5: "ADDITIONAL_SERVICE",
    6: "MODIFIED_SERVICE",
    7: "OTHER_EFFECT",
    8: "UNKNOWN_EFFECT",
    9: "STOP_MOVED",
    10: "NO_EFFECT",
    11: "ACCESSIBILITY_ISSUE",
}

SEVERITY_MAP = {
    1: "UNKNOWN_SEVERITY",
    2: "INFO",
    3: "WARNING",
    4: "SEVERE",
}


def parse_service_date(value: str) -> date:
    """Convert a GTFS ``YYYYMMDD`` start date into a calendar date."""
    value = value.strip()
    if len(value) != 8 or not value.isdigit():
        msg = f"Invalid service date: {value!r} (expected YYYYMMDD)"
        raise ValueError(msg)
    return datetime.strptime(value, "%Y%m%d").date()


def _get_english(translated_string: Any) -> str:
    """Extract the English translation from a TranslatedString, or empty string."""
    for translation in translated_string.translation:
        if translation.language.lower().startswith("en"):
            return str(translation.text)
    return ""


def _unique_ids(values: Iterable[str]) -> tuple[int, ...]:
    """Parse ids as integers, dropping zero or unparseable ids and duplicates."""
    ids: dict[int, None] = {}
    for value in values:
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            continue
        if parsed:
            ids[parsed] = None
    return tuple(ids)


def _partition(kind: str, results: Iterable[Built[T]]) -> list[T]:
    """Keep records, log and drop per-entity errors."""
    records, errors = partition_results(results)
    for error in errors[:20]:
        logger.warning("Skipping malformed entity", kind=kind, error=str(error))
    logger.info("Normalized realtime entities", kind=kind, records=len(records), skipped=len(errors))
    return records


class GtfsRtNormalizer:
    """Maps decoded GTFS-RT entities to typed records.

    Per-entity builders return the record, ``None`` when the entity is
    filtered out, or a RecordError when it is malformed. Malformed
    entities are skipped so the rest of the feed is still processed.
    """

    @staticmethod
    def build_position(
        entity: gtfs_realtime_pb2.FeedEntity, default_timestamp: int = 0
    ) -> Optional[Union[Position, RecordError]]:
        if not entity.HasField("vehicle"):
            return None

        vp = entity.vehicle
        longitude = vp.position.longitude
        latitude = vp.position.latitude

        # (0, 0) means the vehicle has not acquired a fix yet.
        if longitude == 0.0 and latitude == 0.0:
            return None

        try:
            return Position(
                vehicle=int(vp.vehicle.id),
                trip=int(vp.trip.trip_id),
                route=int(vp.trip.route_id),
                direction=vp.trip.direction_id,
                stop=vp.current_stop_sequence,
                longitude=longitude,
                latitude=latitude,
                timestamp=vp.timestamp or default_timestamp or int(time.time()),
                date=parse_service_date(vp.trip.start_date),
            )
        except ValueError as exc:
            return RecordError("position", entity.id, str(exc))

    @staticmethod
    def build_alert(
        entity: gtfs_realtime_pb2.FeedEntity, now: int
    ) -> Optional[Union[Alert, RecordError]]:
        if not entity.HasField("alert"):
            return None

        alert = entity.alert
        informed = list(alert.informed_entity)

        # Only alerts that touch at least one bus route are kept.
        if not any(ie.route_type == BUS_ROUTE_TYPE for ie in informed):
            return None

        text = " ".join(
            [_get_english(alert.header_text), _get_english(alert.description_text)]
        ).strip()

        start = end = 0
        if alert.active_period:
            start = alert.active_period[0].start
            end = alert.active_period[0].end

        try:
            return Alert(
                id=int(entity.id),
                text=text,
                start=start or now,
                # No observed end means the alert is still active.
                end=end or now,
                routes=_unique_ids(ie.route_id for ie in informed),
                trips=_unique_ids(ie.trip.trip_id for ie in informed if ie.HasField("trip")),
                stops=_unique_ids(ie.stop_id for ie in informed),
                cause=CAUSE_MAP.get(alert.cause, "UNKNOWN_CAUSE"),
                effect=EFFECT_MAP.get(alert.effect, "UNKNOWN_EFFECT"),
                severity=SEVERITY_MAP.get(alert.severity_level, "UNKNOWN_SEVERITY"),
            )
        except ValueError as exc:
            return RecordError("alert", entity.id, str(exc))

    @classmethod
    def normalize_positions(
        cls,
        entities: Iterable[gtfs_realtime_pb2.FeedEntity],
        default_timestamp: int = 0,
    ) -> list[Position]:
        """Normalize VehiclePosition entities, dropping positions without a fix."""
        return _partition(
            "position", (cls.build_position(e, default_timestamp) for e in entities)
        )

    @classmethod
    def normalize_alerts(
        cls,
        entities: Iterable[gtfs_realtime_pb2.FeedEntity],
        now: int | None = None,
    ) -> list[Alert]:
        """Normalize Alert entities that affect bus service."""
        now = now or int(time.time())
        return _partition("alert", (cls.build_alert(e, now) for e in entities))
