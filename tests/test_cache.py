"""Tests for response and credential caches."""

from __future__ import annotations

import time
from unittest.mock import AsyncMock

import pytest

from transit_ingest.services.cache import (
    CredentialCache,
    MemoryCache,
    RedisCache,
    ResponseCache,
    cache_key,
    create_cache,
)


class TestCacheKey:
    def test_strips_query_string(self) -> None:
        assert (
            cache_key("https://gtfs.translink.ca/v2/gtfsposition?apikey=secret")
            == "https://gtfs.translink.ca/v2/gtfsposition"
        )

    def test_differing_keys_share_entry(self) -> None:
        assert cache_key("https://x.test/feed?apikey=a") == cache_key("https://x.test/feed?apikey=b&t=1")

    def test_strips_fragment(self) -> None:
        assert cache_key("https://x.test/a.zip#part") == "https://x.test/a.zip"


class TestMemoryCache:
    @pytest.mark.asyncio
    async def test_set_then_get(self, memory_cache: MemoryCache) -> None:
        await memory_cache.set("k", b"v", 60)
        assert await memory_cache.get("k") == b"v"

    @pytest.mark.asyncio
    async def test_expired_entry_is_absent(self, memory_cache: MemoryCache) -> None:
        await memory_cache.set("k", b"v", 10)
        memory_cache._entries["k"] = (time.monotonic() - 1, b"v")
        assert await memory_cache.get("k") is None
        assert len(memory_cache) == 0

    @pytest.mark.asyncio
    async def test_delete(self, memory_cache: MemoryCache) -> None:
        await memory_cache.set("k", b"v", 60)
        await memory_cache.delete("k")
        assert await memory_cache.get("k") is None


class TestRedisCache:
    @pytest.mark.asyncio
    async def test_set_uses_prefix_and_expiry(self) -> None:
        client = AsyncMock()
        cache = RedisCache(client, prefix="t:")
        await cache.set("key", b"body", 0)
        client.set.assert_awaited_once_with("t:key", b"body", ex=1)

    @pytest.mark.asyncio
    async def test_get_returns_bytes(self) -> None:
        client = AsyncMock()
        client.get.return_value = b"body"
        cache = RedisCache(client)
        assert await cache.get("key") == b"body"
        client.get.assert_awaited_once_with("transit:key")

    @pytest.mark.asyncio
    async def test_get_miss(self) -> None:
        client = AsyncMock()
        client.get.return_value = None
        assert await RedisCache(client).get("key") is None

    def test_create_cache_without_url_is_memory(self) -> None:
        assert isinstance(create_cache(None), MemoryCache)

    def test_create_cache_with_url_is_redis(self) -> None:
        assert isinstance(create_cache("redis://localhost:6379/0"), RedisCache)


class TestResponseCache:
    @pytest.mark.asyncio
    async def test_put_and_get_ignore_query(self, response_cache: ResponseCache) -> None:
        assert await response_cache.put("https://x.test/feed?apikey=a", b"data", 60) is True
        assert await response_cache.get("https://x.test/feed?apikey=b") == b"data"

    @pytest.mark.asyncio
    async def test_write_failure_is_best_effort(self) -> None:
        backend = AsyncMock()
        backend.set.side_effect = ConnectionError("redis down")
        cache = ResponseCache(backend)
        assert await cache.put("https://x.test/feed", b"data", 60) is False

    @pytest.mark.asyncio
    async def test_read_failure_is_a_miss(self) -> None:
        backend = AsyncMock()
        backend.get.side_effect = ConnectionError("redis down")
        assert await ResponseCache(backend).get("https://x.test/feed") is None


class TestCredentialCache:
    def test_key_format(self) -> None:
        assert CredentialCache.key_for("https://issuer.test", "proj", "kid") == "https://issuer.test/proj/kid"

    @pytest.mark.asyncio
    async def test_round_trip_and_discard(self, memory_cache: MemoryCache) -> None:
        cache = CredentialCache(memory_cache)
        await cache.put("k", "token-1", 3600)
        assert await cache.get("k") == "token-1"
        await cache.discard("k")
        assert await cache.get("k") is None
