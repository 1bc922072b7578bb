"""GTFS-RT protobuf decode layer."""

from __future__ import annotations

from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from transit_ingest.logging import get_logger

logger = get_logger(__name__)


class FeedDecodeError(Exception):
    """Raised when a realtime payload is not a valid FeedMessage."""


class GtfsRtDecoder:
    """Decodes raw protobuf bytes into GTFS-RT FeedMessage objects."""

    @staticmethod
    def decode(data: bytes, resource: str) -> gtfs_realtime_pb2.FeedMessage:
        """Decode protobuf bytes into a FeedMessage.

        Args:
            data: Raw protobuf bytes.
            resource: Realtime resource name, for logging.

        Returns:
            Parsed FeedMessage.

        Raises:
            FeedDecodeError: If protobuf parsing fails.
        """
        try:
            feed = gtfs_realtime_pb2.FeedMessage()
            feed.ParseFromString(data)
        except DecodeError as exc:
            msg = f"Failed to decode {resource} protobuf"
            logger.error(msg, resource=resource, error=str(exc))
            raise FeedDecodeError(msg) from exc

        logger.info(
            "GTFS-RT feed decoded",
            resource=resource,
            entity_count=len(feed.entity),
            feed_timestamp=GtfsRtDecoder.get_feed_timestamp(feed),
            gtfs_rt_version=feed.header.gtfs_realtime_version,
        )

        return feed

    @staticmethod
    def get_feed_timestamp(feed: gtfs_realtime_pb2.FeedMessage) -> int:
        """Extract the header timestamp from a FeedMessage.

        Returns:
            Unix timestamp (seconds), or 0 if not set.
        """
        return feed.header.timestamp if feed.header.timestamp else 0
