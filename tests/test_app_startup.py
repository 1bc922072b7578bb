"""Tests for application startup and shutdown."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from transit_ingest.errors import ConfigurationError
from transit_ingest.main import app, lifespan
from transit_ingest.routers import ingest

TARGET_ENV = ("AWS_ID", "AWS_SECRET", "GOOGLE_ENDPOINT", "GOOGLE_SECRET", "REDIS_URL")


@pytest.mark.asyncio
async def test_startup_fails_without_api_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TRANSLINK_API", raising=False)
    monkeypatch.delenv("TRANSLINK_API_KEYS", raising=False)

    with patch("transit_ingest.main.setup_logging"), pytest.raises(ConfigurationError):
        async with lifespan(app):
            pass

    assert ingest._pipeline_instance is None


@pytest.mark.asyncio
async def test_startup_builds_and_shutdown_drops_pipeline(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRANSLINK_API", "k1")
    for name in TARGET_ENV:
        monkeypatch.delenv(name, raising=False)

    with patch("transit_ingest.main.setup_logging"):
        async with lifespan(app):
            assert ingest._pipeline_instance is not None

    assert ingest._pipeline_instance is None
