"""GTFS-Realtime ingestion for TransLink vehicle positions and alerts."""

from transit_ingest.services.gtfs_rt.client import RealtimeClient
from transit_ingest.services.gtfs_rt.decoder import FeedDecodeError, GtfsRtDecoder
from transit_ingest.services.gtfs_rt.normalizer import GtfsRtNormalizer

__all__ = [
    "FeedDecodeError",
    "GtfsRtDecoder",
    "GtfsRtNormalizer",
    "RealtimeClient",
]
