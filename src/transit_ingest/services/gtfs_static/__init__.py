"""Static GTFS snapshot ingestion for TransLink schedules."""

from transit_ingest.services.gtfs_static.client import ScheduleClient, ScheduleError
from transit_ingest.services.gtfs_static.normalizer import GtfsNormalizer
from transit_ingest.services.gtfs_static.parser import TableParseError, parse, unparse
from transit_ingest.services.gtfs_static.reader import ArchiveError, unzip

__all__ = [
    "ArchiveError",
    "GtfsNormalizer",
    "ScheduleClient",
    "ScheduleError",
    "TableParseError",
    "parse",
    "unparse",
    "unzip",
]
