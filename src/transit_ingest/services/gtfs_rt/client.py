"""Client for the TransLink GTFS-realtime API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from transit_ingest.logging import get_logger
from transit_ingest.services.gtfs_rt.decoder import GtfsRtDecoder
from transit_ingest.services.gtfs_rt.normalizer import GtfsRtNormalizer

if TYPE_CHECKING:
    from google.transit import gtfs_realtime_pb2  # type: ignore[import-untyped]

    from transit_ingest.models import Alert, Position
    from transit_ingest.services.fetcher import CachedFetcher
    from transit_ingest.services.keys import KeyRotator

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://gtfs.translink.ca"
DEFAULT_REQUESTS_PER_KEY = 1000
DEFAULT_QUOTA_WINDOW_SEC = 60 * 60 * 24

RESOURCE_POSITIONS = "gtfsposition"
RESOURCE_ALERTS = "gtfsalerts"


class RealtimeClient:
    """Fetches and decodes realtime feeds using a rotating pool of API keys.

    Responses are cached for the shortest interval that keeps the whole
    key pool inside its combined quota.
    """

    def __init__(
        self,
        rotator: KeyRotator,
        fetcher: CachedFetcher,
        base_url: str = DEFAULT_BASE_URL,
        requests_per_key: int = DEFAULT_REQUESTS_PER_KEY,
        quota_window_sec: int = DEFAULT_QUOTA_WINDOW_SEC,
    ) -> None:
        self._rotator = rotator
        self._fetcher = fetcher
        self._base_url = base_url.rstrip("/")
        self._requests_per_key = requests_per_key
        self._quota_window_sec = quota_window_sec
        self._decoder = GtfsRtDecoder()
        self._normalizer = GtfsRtNormalizer()

    @property
    def ttl(self) -> int:
        return self._rotator.cache_ttl(self._requests_per_key, self._quota_window_sec)

    def url_for(self, resource: str) -> str:
        return f"{self._base_url}/v2/{resource}?apikey={self._rotator.next_key()}"

    async def get_message(self, resource: str) -> gtfs_realtime_pb2.FeedMessage:
        """Fetch and decode one realtime resource.

        Raises:
            NetworkError: If the API answers with a non-2xx status.
            FeedDecodeError: If the payload is not a FeedMessage.
        """
        data = await self._fetcher.fetch(self.url_for(resource), self.ttl)
        return self._decoder.decode(data, resource)

    async def get_feed(self, resource: str) -> list[gtfs_realtime_pb2.FeedEntity]:
        """Return the raw entities of a realtime resource."""
        feed = await self.get_message(resource)
        return list(feed.entity)

    async def get_positions(self) -> list[Position]:
        """Get the latest vehicle positions."""
        feed = await self.get_message(RESOURCE_POSITIONS)
        return self._normalizer.normalize_positions(
            feed.entity, default_timestamp=self._decoder.get_feed_timestamp(feed)
        )

    async def get_alerts(self) -> list[Alert]:
        """Get the active service alerts that affect buses."""
        entities = await self.get_feed(RESOURCE_ALERTS)
        return self._normalizer.normalize_alerts(entities)
