"""Fetch, normalize and store one transit resource per invocation.

The pipeline returns normalized records to the caller immediately and
hands the storage write to a background task, so a slow or failing
target never delays the response.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import httpx

from transit_ingest.errors import ConfigurationError
from transit_ingest.logging import get_logger
from transit_ingest.services.cache import CredentialCache, ResponseCache, create_cache
from transit_ingest.services.fetcher import CachedFetcher
from transit_ingest.services.gtfs_rt.client import RealtimeClient
from transit_ingest.services.gtfs_static.client import ScheduleClient, schedule_version
from transit_ingest.services.keys import KeyRotator
from transit_ingest.services.storage import (
    ObjectStoreTarget,
    ServiceAccount,
    StorageSink,
    TokenIssuer,
    WarehouseTarget,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from transit_ingest.config import Settings
    from transit_ingest.models import Record
    from transit_ingest.services.cache import CacheBackend
    from transit_ingest.services.storage import SinkReport, StorageTarget

logger = get_logger(__name__)

REALTIME_RESOURCES = ("positions", "alerts")
SCHEDULE_RESOURCES = ("routes", "trips", "stops", "paths")
SCHEDULE_NAMESPACE = "schedule"
REALTIME_KEY = "raw"


class UnknownResourceError(LookupError):
    """Raised when a namespace names no known resource."""


class InvalidKeyError(ValueError):
    """Raised when a resource key cannot be interpreted."""


def storage_location(namespace: str) -> tuple[str, str]:
    """Return the ``(namespace, key)`` a resource's records are written under."""
    if namespace in REALTIME_RESOURCES:
        return namespace, REALTIME_KEY
    if namespace in SCHEDULE_RESOURCES:
        return SCHEDULE_NAMESPACE, namespace
    msg = f"Unknown resource: {namespace}"
    raise UnknownResourceError(msg)


@dataclass
class IngestResult:
    """Records for the caller plus the handle of their pending storage write."""

    namespace: str
    key: Optional[str]
    records: list[Record]
    writes: asyncio.Task[SinkReport]


class ErrorReporter:
    """Forwards background failures to a dedicated error logger."""

    def __init__(self, name: str = "transit_ingest.errors") -> None:
        self._logger = get_logger(name)

    def capture(self, exc: BaseException, **context: Any) -> None:
        self._logger.error("Background task failed", exc_info=exc, error=str(exc), **context)


async def observe_writes(task: asyncio.Task[SinkReport], reporter: ErrorReporter) -> Optional[SinkReport]:
    """Await a storage write and report every failure it produced."""
    try:
        report = await task
    except Exception as exc:
        reporter.capture(exc, stage="storage")
        return None

    for target, error in report.errors.items():
        reporter.capture(error, stage="storage", target=target, namespace=report.namespace, key=report.key)
    return report


class TransitPipeline:
    """Routes a ``namespace``/``key`` request to the matching client."""

    def __init__(
        self,
        realtime: RealtimeClient,
        schedule: ScheduleClient,
        sink: StorageSink,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.realtime = realtime
        self.schedule = schedule
        self.sink = sink
        self._http_client = http_client
        self._pending: set[asyncio.Task[SinkReport]] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        backend: Optional[CacheBackend] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> TransitPipeline:
        """Wire clients, caches and write targets from configuration.

        Raises:
            ConfigurationError: If no API keys are configured.
        """
        backend = backend or create_cache(settings.redis_url)
        http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout_sec),
            follow_redirects=True,
        )
        fetcher = CachedFetcher(
            ResponseCache(backend), timeout_sec=settings.http_timeout_sec, client=http_client
        )

        realtime = RealtimeClient(
            KeyRotator.from_delimited(settings.translink_api_keys),
            fetcher,
            base_url=settings.realtime_base_url,
            requests_per_key=settings.requests_per_key,
            quota_window_sec=settings.quota_window_sec,
        )
        schedule = ScheduleClient(
            fetcher,
            url_template=settings.schedule_url_template,
            ttl=settings.schedule_cache_ttl_sec,
        )
        targets = build_targets(settings, CredentialCache(backend), http_client)
        return cls(realtime, schedule, StorageSink(targets), http_client=http_client)

    async def fetch(self, namespace: str, key: Optional[str] = None) -> Sequence[Record]:
        """Fetch the normalized records for one resource.

        Raises:
            UnknownResourceError: If ``namespace`` names no resource.
            InvalidKeyError: If a schedule resource has no valid date key.
        """
        if namespace == "positions":
            return await self.realtime.get_positions()
        if namespace == "alerts":
            return await self.realtime.get_alerts()
        if namespace not in SCHEDULE_RESOURCES:
            msg = f"Unknown resource: {namespace}"
            raise UnknownResourceError(msg)

        if not key:
            msg = f"A schedule date is required for {namespace}"
            raise InvalidKeyError(msg)
        try:
            day = schedule_version(key)
        except ValueError as exc:
            msg = f"Invalid schedule date: {key}"
            raise InvalidKeyError(msg) from exc

        getter = getattr(self.schedule, f"get_{namespace}")
        return await getter(day)

    async def run(self, namespace: str, key: Optional[str] = None) -> IngestResult:
        """Fetch a resource and schedule its storage write in the background."""
        target_namespace, target_key = storage_location(namespace)
        records = list(await self.fetch(namespace, key))
        logger.info("Resource fetched", namespace=namespace, key=key, records=len(records))

        writes = asyncio.create_task(
            self.sink.put(target_namespace, target_key, records),
            name=f"store:{target_namespace}/{target_key}",
        )
        self._pending.add(writes)
        writes.add_done_callback(self._pending.discard)
        return IngestResult(namespace=namespace, key=key, records=records, writes=writes)

    async def aclose(self) -> None:
        """Wait for in-flight writes, then release the HTTP client."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._http_client is not None:
            await self._http_client.aclose()


def build_targets(
    settings: Settings,
    credentials: CredentialCache,
    http_client: httpx.AsyncClient,
) -> list[StorageTarget]:
    """Create a write target for every fully configured destination."""
    targets: list[StorageTarget] = []
    if settings.object_store_enabled:
        targets.append(ObjectStoreTarget.from_settings(settings))
    if settings.warehouse_enabled:
        try:
            account = ServiceAccount.from_encoded(settings.google_secret)
        except ConfigurationError:
            logger.error("Warehouse disabled: unreadable service account secret")
            raise
        issuer = TokenIssuer(settings.google_endpoint, account, credentials, client=http_client)
        targets.append(WarehouseTarget(issuer, base_url=settings.warehouse_url))

    logger.info("Storage targets configured", targets=[target.name for target in targets])
    return targets
