"""In-memory write targets for storage and pipeline tests."""

from __future__ import annotations

import asyncio
from typing import Any


class RecordingTarget:
    """Write target that records what it was asked to store."""

    def __init__(
        self,
        name: str,
        result: bool = True,
        error: Exception | None = None,
        delay: float = 0,
    ) -> None:
        self.name = name
        self.result = result
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, str, tuple[Any, ...]]] = []

    def locate(self, namespace: str, key: str) -> tuple[str, str]:
        return f"{self.name}-{namespace}", key

    async def put(self, namespace: str, key: str, *records: Any) -> bool:
        await asyncio.sleep(self.delay)
        self.calls.append((namespace, key, records))
        if self.error:
            raise self.error
        return self.result
