"""Shared fixtures.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import pytest

from filecache_core import Cache, CacheConfig


class FakeClock:
    """Manually advanced timestamp source."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Counter:
    """Populate callback that counts its calls and writes the count."""

    def __init__(self):
        self.calls = 0

    def __call__(self, f):
        self.calls += 1
        f.write(str(self.calls).encode())


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def counter():
    return Counter()


@pytest.fixture
def cache(clock):
    with Cache.temporary(config=CacheConfig(clock=clock)) as cache:
        yield cache
