"""Shared TTL caches for upstream responses and bearer credentials."""

from __future__ import annotations

import time
from typing import Protocol
from urllib.parse import urlsplit, urlunsplit

from redis.asyncio import Redis

from transit_ingest.logging import get_logger

logger = get_logger(__name__)


class CacheBackend(Protocol):
    """Minimal async key/value store with per-entry expiry."""

    async def get(self, key: str) -> bytes | None: ...

    async def set(self, key: str, value: bytes, ttl: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryCache:
    """In-process cache, used when no shared backend is configured."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[float, bytes]] = {}

    async def get(self, key: str) -> bytes | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= time.monotonic():
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        self._entries[key] = (time.monotonic() + ttl, value)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class RedisCache:
    """Cache shared between invocations through Redis."""

    def __init__(self, client: Redis, prefix: str = "transit:") -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "transit:") -> RedisCache:
        return cls(Redis.from_url(url), prefix=prefix)

    async def get(self, key: str) -> bytes | None:
        value = await self._client.get(self._prefix + key)
        if value is None:
            return None
        return value if isinstance(value, bytes) else str(value).encode()

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        await self._client.set(self._prefix + key, value, ex=max(int(ttl), 1))

    async def delete(self, key: str) -> None:
        await self._client.delete(self._prefix + key)

    async def close(self) -> None:
        await self._client.aclose()


def create_cache(redis_url: str | None = None) -> CacheBackend:
    """Return a Redis-backed cache when a URL is configured, else in-memory."""
    if redis_url:
        logger.info("Using shared Redis cache", redis_url=urlsplit(redis_url).hostname)
        return RedisCache.from_url(redis_url)
    return MemoryCache()


def cache_key(url: str) -> str:
    """Normalize a request URL into a cache key by dropping query and fragment.

    Keys are shared across differing API keys or cache-busting parameters
    attached to the same logical resource.
    """
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class ResponseCache:
    """Caches successful response bodies keyed by their normalized URL."""

    def __init__(self, backend: CacheBackend) -> None:
        self._backend = backend

    async def get(self, url: str) -> bytes | None:
        key = cache_key(url)
        try:
            return await self._backend.get(key)
        except Exception as exc:
            logger.warning("Response cache read failed", key=key, error=str(exc))
            return None

    async def put(self, url: str, content: bytes, ttl: int) -> bool:
        """Store a response body with a ``max-age`` of ``ttl`` seconds.

        Returns False instead of raising when the write fails.
        """
        key = cache_key(url)
        try:
            await self._backend.set(key, content, ttl)
        except Exception as exc:
            logger.warning("Response cache write failed", key=key, ttl=ttl, error=str(exc))
            return False
        logger.debug("Response cached", key=key, ttl=ttl, size_bytes=len(content))
        return True


class CredentialCache:
    """Caches bearer tokens keyed by issuer, project and key id."""

    def __init__(self, backend: CacheBackend) -> None:
        self._backend = backend

    @staticmethod
    def key_for(issuer_url: str, project_id: str, key_id: str) -> str:
        return f"{issuer_url}/{project_id}/{key_id}"

    async def get(self, key: str) -> str | None:
        try:
            value = await self._backend.get(key)
        except Exception as exc:
            logger.warning("Credential cache read failed", error=str(exc))
            return None
        return value.decode() if value is not None else None

    async def put(self, key: str, token: str, ttl: int) -> None:
        try:
            await self._backend.set(key, token.encode(), ttl)
        except Exception as exc:
            logger.warning("Credential cache write failed", error=str(exc))

    async def discard(self, key: str) -> None:
        try:
            await self._backend.delete(key)
        except Exception as exc:
            logger.warning("Credential cache delete failed", error=str(exc))
