"""Cached HTTP GET for upstream transit resources."""

from __future__ import annotations

import hashlib

import httpx

from transit_ingest.errors import NetworkError
from transit_ingest.logging import get_logger
from transit_ingest.services.cache import ResponseCache, cache_key

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 30.0


class CachedFetcher:
    """Fetches URLs through a ResponseCache.

    A cache hit skips the network entirely. On a miss the resource is
    fetched and, only when the response is 2xx, stored with the
    caller-supplied ttl. Non-2xx responses raise NetworkError and are
    never cached.
    """

    def __init__(
        self,
        cache: ResponseCache,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.cache = cache
        self.timeout_sec = timeout_sec
        self._client = client

    async def fetch(self, url: str, ttl: int) -> bytes:
        """Return the body of ``url``, from cache when fresh.

        Raises:
            NetworkError: On a non-2xx status or a transport failure.
        """
        key = cache_key(url)
        cached = await self.cache.get(url)
        if cached is not None:
            logger.debug("Response cache hit", key=key, size_bytes=len(cached))
            return cached

        logger.info("Fetching upstream resource", key=key, ttl=ttl)
        try:
            response = await self._get(url)
        except httpx.RequestError as exc:
            msg = f"Request to {key} failed: {exc}"
            raise NetworkError(msg, url=key) from exc

        if not response.is_success:
            msg = f"Bad response from {key}: {response.status_code}"
            logger.error(msg, key=key, status_code=response.status_code)
            raise NetworkError(msg, status_code=response.status_code, url=key)

        data = response.content
        logger.info(
            "Upstream resource downloaded",
            key=key,
            size_bytes=len(data),
            content_hash=hashlib.sha256(data).hexdigest()[:12],
        )
        await self.cache.put(url, data, ttl)
        return data

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url)
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_sec),
            follow_redirects=True,
        ) as client:
            return await client.get(url)
