"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from transit_ingest.config import get_settings
from transit_ingest.main import app
from transit_ingest.routers.ingest import reset_pipeline
from transit_ingest.services.cache import MemoryCache, ResponseCache


@pytest.fixture(autouse=True)
def _reset_singletons() -> Generator[None, None, None]:
    """Drop cached settings and pipeline between tests."""
    get_settings.cache_clear()
    reset_pipeline()
    yield
    get_settings.cache_clear()
    reset_pipeline()


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def response_cache(memory_cache: MemoryCache) -> ResponseCache:
    return ResponseCache(memory_cache)


@pytest.fixture
def mock_pipeline() -> Any:
    """Replace the pipeline used by the ingest router."""
    pipeline = MagicMock()
    pipeline.run = AsyncMock()
    with patch("transit_ingest.routers.ingest.get_pipeline", return_value=pipeline):
        yield pipeline


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
