"""Tests for the API key rotator."""

from __future__ import annotations

import random

import pytest

from transit_ingest.errors import ConfigurationError
from transit_ingest.services.keys import KeyRotator


class TestKeyRotator:
    """Unit tests for KeyRotator."""

    def test_from_delimited_strips_blanks(self) -> None:
        rotator = KeyRotator.from_delimited(" alpha, beta ,,gamma ")
        assert rotator.keys == ("alpha", "beta", "gamma")
        assert len(rotator) == 3

    def test_empty_key_set_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            KeyRotator.from_delimited(" , ")

    def test_next_key_always_from_pool(self) -> None:
        rotator = KeyRotator(["a", "b", "c"], rng=random.Random(7))
        seen = {rotator.next_key() for _ in range(200)}
        assert seen == {"a", "b", "c"}

    def test_single_key_always_returned(self) -> None:
        rotator = KeyRotator(["only"])
        assert {rotator.next_key() for _ in range(10)} == {"only"}

    def test_selection_is_seedable(self) -> None:
        first = KeyRotator(["a", "b", "c", "d"], rng=random.Random(42))
        second = KeyRotator(["a", "b", "c", "d"], rng=random.Random(42))
        assert [first.next_key() for _ in range(20)] == [second.next_key() for _ in range(20)]

    @pytest.mark.parametrize(
        ("keys", "expected"),
        [
            (1, 87),  # ceil(86400 / 1000)
            (2, 44),  # ceil(86400 / 2000)
            (4, 22),  # ceil(86400 / 4000)
        ],
    )
    def test_cache_ttl_scales_with_pool(self, keys: int, expected: int) -> None:
        rotator = KeyRotator([f"k{i}" for i in range(keys)])
        assert rotator.cache_ttl(1000, 86400) == expected
