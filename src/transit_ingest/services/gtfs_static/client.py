"""Client for dated TransLink static GTFS snapshots."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, TypeVar, Union

from transit_ingest.errors import NetworkError
from transit_ingest.logging import get_logger
from transit_ingest.services.gtfs_static.normalizer import GtfsNormalizer
from transit_ingest.services.gtfs_static.parser import TableParseError, parse
from transit_ingest.services.gtfs_static.reader import unzip
from transit_ingest.services.results import partition_results

if TYPE_CHECKING:
    from collections.abc import Iterable

    from transit_ingest.models import Path, Route, Stop, Trip
    from transit_ingest.services.fetcher import CachedFetcher
    from transit_ingest.services.results import Built

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_URL_TEMPLATE = (
    "https://translinkweb.blob.core.windows.net/gtfs/History/{version}/google_transit.zip"
)
# Archives for a past date never change, so cache them for about a year.
DEFAULT_TTL_SEC = 60 * 60 * 24 * 7 * 52

ScheduleDate = Union[date, datetime, str]


class ScheduleError(Exception):
    """Raised when a snapshot lacks a table or the table is malformed."""


def schedule_version(day: ScheduleDate) -> str:
    """Return the ISO calendar date naming the snapshot for ``day``.

    Raises:
        ValueError: If a string is not an ISO date.
    """
    if isinstance(day, datetime):
        return day.date().isoformat()
    if isinstance(day, date):
        return day.isoformat()
    return date.fromisoformat(day.strip()[:10]).isoformat()


class ScheduleClient:
    """Fetches, extracts and parses tables from dated schedule snapshots."""

    def __init__(
        self,
        fetcher: CachedFetcher,
        url_template: str = DEFAULT_URL_TEMPLATE,
        ttl: int = DEFAULT_TTL_SEC,
    ) -> None:
        self._fetcher = fetcher
        self._url_template = url_template
        self._ttl = ttl
        self._normalizer = GtfsNormalizer()

    def url_for(self, day: ScheduleDate) -> str:
        return self._url_template.format(version=schedule_version(day))

    async def get_schedule(self, day: ScheduleDate, table: str) -> list[dict[str, str]]:
        """Return the parsed rows of one table from the snapshot for ``day``.

        Raises:
            NetworkError: If the archive download answers non-2xx.
            ArchiveError: If the archive is corrupt.
            ScheduleError: If the table is missing or malformed.
        """
        version = schedule_version(day)
        url = self.url_for(day)

        try:
            data = await self._fetcher.fetch(url, self._ttl)
        except NetworkError as exc:
            msg = f"Bad schedule {table} for {version}: {exc.status_code}"
            raise NetworkError(msg, status_code=exc.status_code, url=exc.url) from exc

        members = unzip(data, table)
        if table not in members:
            msg = f"Bad schedule {table} for {version}: not found in archive"
            raise ScheduleError(msg)

        try:
            rows = parse(members[table], resource=table)
        except TableParseError as exc:
            msg = f"Bad schedule {table} format for {version}: {exc}"
            raise ScheduleError(msg) from exc

        logger.info("Schedule table loaded", version=version, table=table, rows=len(rows))
        return rows

    async def get_trips(self, day: ScheduleDate) -> list[Trip]:
        rows = await self.get_schedule(day, "trips.txt")
        return _keep("trip", (self._normalizer.build_trip(row) for row in rows))

    async def get_stops(self, day: ScheduleDate) -> list[Stop]:
        rows = await self.get_schedule(day, "stops.txt")
        return _keep("stop", (self._normalizer.build_stop(row) for row in rows))

    async def get_routes(self, day: ScheduleDate) -> list[Route]:
        rows = await self.get_schedule(day, "routes.txt")
        return _keep("route", (self._normalizer.build_route(row) for row in rows))

    async def get_paths(self, day: ScheduleDate) -> list[Path]:
        rows = await self.get_schedule(day, "shapes.txt")
        return _keep("path", self._normalizer.group_paths(rows))


def _keep(kind: str, results: Iterable[Built[T]]) -> list[T]:
    records, errors = partition_results(results)
    for error in errors[:20]:
        logger.warning("Skipping malformed row", kind=kind, error=str(error))
    logger.info("Normalized schedule rows", kind=kind, records=len(records), skipped=len(errors))
    return records
