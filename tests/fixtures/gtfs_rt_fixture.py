"""Test fixtures for GTFS-RT protobuf data."""

from __future__ import annotations

import time

from google.transit import gtfs_realtime_pb2


def new_feed(feed_timestamp: int | None = None) -> gtfs_realtime_pb2.FeedMessage:
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.header.gtfs_realtime_version = "2.0"
    feed.header.timestamp = feed_timestamp or int(time.time())
    return feed


def add_vehicle(
    feed: gtfs_realtime_pb2.FeedMessage,
    vehicle_id: str = "8123",
    trip_id: str = "11223344",
    route_id: str = "6641",
    direction_id: int = 1,
    stop_sequence: int = 3,
    lat: float = 49.2827,
    lon: float = -123.1207,
    timestamp: int | None = 1569945600,
    start_date: str = "20191001",
) -> gtfs_realtime_pb2.FeedEntity:
    """Append a VehiclePosition entity to ``feed``."""
    entity = feed.entity.add()
    entity.id = f"vp_{vehicle_id}"
    vp = entity.vehicle
    vp.vehicle.id = vehicle_id
    vp.trip.trip_id = trip_id
    vp.trip.route_id = route_id
    vp.trip.direction_id = direction_id
    vp.trip.start_date = start_date
    vp.position.latitude = lat
    vp.position.longitude = lon
    vp.current_stop_sequence = stop_sequence
    if timestamp:
        vp.timestamp = timestamp
    return entity


def build_vehicle_position_feed(feed_timestamp: int | None = None, **vehicle: object) -> bytes:
    """Build a serialized FeedMessage with one VehiclePosition entity."""
    feed = new_feed(feed_timestamp)
    add_vehicle(feed, **vehicle)  # type: ignore[arg-type]
    return feed.SerializeToString()


def build_multi_vehicle_feed(count: int = 5, feed_timestamp: int | None = None) -> bytes:
    """Build a FeedMessage with ``count`` vehicles, the last one without a GPS fix."""
    feed = new_feed(feed_timestamp)
    for i in range(count):
        fixed = i < count - 1
        add_vehicle(
            feed,
            vehicle_id=str(9000 + i),
            trip_id=str(100 + i),
            lat=49.25 + i / 100 if fixed else 0.0,
            lon=-123.1 if fixed else 0.0,
        )
    return feed.SerializeToString()


def add_alert(
    feed: gtfs_realtime_pb2.FeedMessage,
    alert_id: str = "1001",
    informed: list[dict] | None = None,
    header: str = "Detour on Route 99",
    description: str = "Eastbound buses detoured via 12th Ave.",
    language: str = "en",
    cause: int = 10,  # CONSTRUCTION
    effect: int = 4,  # DETOUR
    severity: int = 3,  # WARNING
    active_start: int | None = None,
    active_end: int | None = None,
) -> gtfs_realtime_pb2.FeedEntity:
    """Append an Alert entity to ``feed``.

    Args:
        feed: Feed to extend.
        alert_id: Entity id, numeric for TransLink alerts.
        informed: Dicts with optional keys route_id, route_type, trip_id
            and stop_id, one per informed entity.
        header: Header text.
        description: Description text.
        language: Language tag for both translations.
        cause: Cause enum value.
        effect: Effect enum value.
        severity: Severity level enum value.
        active_start: Start of the first active period.
        active_end: End of the first active period.

    Returns:
        The added entity.
    """
    entity = feed.entity.add()
    entity.id = alert_id
    alert = entity.alert
    alert.cause = cause
    alert.effect = effect
    alert.severity_level = severity

    ts = alert.header_text.translation.add()
    ts.text = header
    ts.language = language

    ds = alert.description_text.translation.add()
    ds.text = description
    ds.language = language

    if active_start or active_end:
        period = alert.active_period.add()
        if active_start:
            period.start = active_start
        if active_end:
            period.end = active_end

    if informed is None:
        informed = [{"route_id": "6641", "route_type": 3}]

    for selector in informed:
        ie = alert.informed_entity.add()
        if "route_id" in selector:
            ie.route_id = selector["route_id"]
        if "route_type" in selector:
            ie.route_type = selector["route_type"]
        if "trip_id" in selector:
            ie.trip.trip_id = selector["trip_id"]
        if "stop_id" in selector:
            ie.stop_id = selector["stop_id"]

    return entity


def build_alert_feed(feed_timestamp: int | None = None, **alert: object) -> bytes:
    """Build a serialized FeedMessage with one Alert entity."""
    feed = new_feed(feed_timestamp)
    add_alert(feed, **alert)  # type: ignore[arg-type]
    return feed.SerializeToString()


def build_empty_feed(feed_timestamp: int | None = None) -> bytes:
    """Build an empty FeedMessage with no entities."""
    return new_feed(feed_timestamp).SerializeToString()


def parse_feed(data: bytes) -> gtfs_realtime_pb2.FeedMessage:
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.ParseFromString(data)
    return feed
