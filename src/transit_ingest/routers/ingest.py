"""Resource ingest endpoints."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException

from transit_ingest.config import get_settings
from transit_ingest.logging import get_logger
from transit_ingest.services.pipeline import (
    ErrorReporter,
    InvalidKeyError,
    TransitPipeline,
    UnknownResourceError,
    observe_writes,
)

logger = get_logger(__name__)

router = APIRouter(tags=["ingest"])

_pipeline_instance: TransitPipeline | None = None
_reporter_instance: ErrorReporter | None = None


def get_pipeline() -> TransitPipeline:
    """Get or create the singleton pipeline."""
    global _pipeline_instance
    if _pipeline_instance is None:
        _pipeline_instance = TransitPipeline.from_settings(get_settings())
    return _pipeline_instance


def get_error_reporter() -> ErrorReporter:
    global _reporter_instance
    if _reporter_instance is None:
        _reporter_instance = ErrorReporter(get_settings().error_reporter)
    return _reporter_instance


async def close_pipeline() -> None:
    """Drain and drop the singleton pipeline."""
    global _pipeline_instance
    if _pipeline_instance is not None:
        await _pipeline_instance.aclose()
    _pipeline_instance = None


def reset_pipeline() -> None:
    """Reset the singletons (for testing)."""
    global _pipeline_instance, _reporter_instance
    _pipeline_instance = None
    _reporter_instance = None


async def _ingest(
    namespace: str, key: Optional[str], background_tasks: BackgroundTasks
) -> list[dict[str, Any]]:
    try:
        result = await get_pipeline().run(namespace, key)
    except UnknownResourceError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidKeyError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error("Ingest failed", namespace=namespace, key=key, error=str(exc))
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    background_tasks.add_task(observe_writes, result.writes, get_error_reporter())
    return [record.to_row() for record in result.records]


@router.get("/{namespace}", summary="Fetch a realtime resource")
async def ingest_resource(namespace: str, background_tasks: BackgroundTasks) -> list[dict[str, Any]]:
    """Return the latest records of ``positions`` or ``alerts`` and store them."""
    return await _ingest(namespace, None, background_tasks)


@router.get("/{namespace}/{key}", summary="Fetch a dated schedule resource")
async def ingest_keyed_resource(
    namespace: str, key: str, background_tasks: BackgroundTasks
) -> list[dict[str, Any]]:
    """Return the records of ``routes``, ``trips``, ``stops`` or ``paths`` for the date ``key``."""
    return await _ingest(namespace, key, background_tasks)
