"""Random selection across a pool of rate-limited API keys."""

from __future__ import annotations

import math
import random
from typing import TYPE_CHECKING

from transit_ingest.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable


class KeyRotator:
    """Hands out one API key per request, chosen uniformly at random.

    Each key carries its own daily quota upstream, so spreading requests
    across the pool multiplies the usable request budget without any
    shared cursor between invocations.
    """

    def __init__(self, keys: Iterable[str], rng: random.Random | None = None) -> None:
        self._keys = tuple(key.strip() for key in keys if key and key.strip())
        if not self._keys:
            msg = "At least one API key is required"
            raise ConfigurationError(msg)
        self._rng = rng or random.Random()

    @classmethod
    def from_delimited(cls, value: str, sep: str = ",") -> KeyRotator:
        """Build a rotator from a delimited configuration string."""
        return cls(value.split(sep))

    @property
    def keys(self) -> tuple[str, ...]:
        return self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def next_key(self) -> str:
        return self._rng.choice(self._keys)

    def cache_ttl(self, requests_per_key: int, window_sec: int) -> int:
        """Seconds between upstream requests that keeps the pool within quota."""
        return math.ceil(window_sec / (requests_per_key * len(self._keys)))
