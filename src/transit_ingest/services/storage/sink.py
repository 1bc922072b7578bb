"""Fan-out of one record batch to every configured write target."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from transit_ingest.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from transit_ingest.models import Record
    from transit_ingest.services.storage.base import StorageTarget

logger = get_logger(__name__)


@dataclass
class SinkReport:
    """Per-target outcome of a single batch write."""

    namespace: str
    key: str
    results: dict[str, bool] = field(default_factory=dict)
    errors: dict[str, BaseException] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def written(self) -> bool:
        return any(self.results.values())


class StorageSink:
    """Writes a batch to all targets concurrently.

    A failure in one target never prevents or cancels the others; every
    outcome lands in the returned SinkReport.
    """

    def __init__(self, targets: Sequence[StorageTarget] = ()) -> None:
        self.targets = list(targets)

    async def put(
        self,
        namespace: str,
        key: str,
        records: Sequence[Record | Mapping[str, Any]],
    ) -> SinkReport:
        report = SinkReport(namespace=namespace, key=key)
        if not self.targets:
            logger.warning("No storage targets configured", namespace=namespace, key=key)
            return report

        outcomes = await asyncio.gather(
            *(self._put_one(target, namespace, key, records) for target in self.targets),
            return_exceptions=True,
        )

        for target, outcome in zip(self.targets, outcomes):
            if isinstance(outcome, BaseException):
                report.errors[target.name] = outcome
                report.results[target.name] = False
                logger.error(
                    "Storage target failed",
                    target=target.name,
                    namespace=namespace,
                    key=key,
                    error=str(outcome),
                )
            else:
                report.results[target.name] = outcome

        logger.info(
            "Storage fan-out complete",
            namespace=namespace,
            key=key,
            records=len(records),
            results=report.results,
        )
        return report

    @staticmethod
    async def _put_one(
        target: StorageTarget,
        namespace: str,
        key: str,
        records: Sequence[Record | Mapping[str, Any]],
    ) -> bool:
        located_namespace, located_key = target.locate(namespace, key)
        return await target.put(located_namespace, located_key, *records)
