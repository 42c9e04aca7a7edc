"""FileCache Refresh Policy - Time-Based Freshness Rules.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum, auto
from typing import Optional, Union

from filecache_core.errors import ConfigError


class PolicyKind(Enum):
    """Refresh policy kinds."""

    NEVER = auto()       # Fresh forever once populated
    ALWAYS = auto()      # Stale on every access
    INTERVAL = auto()    # Stale once the interval has elapsed


@dataclass(frozen=True)
class RefreshPolicy:
    """Rule deciding when populated content goes stale.

    Attributes:
        kind: Policy kind
        seconds: Interval length, only for INTERVAL

    Example:
        RefreshPolicy.after(60).is_stale(last_populated=0.0, now=61.0)  # True
        RefreshPolicy.never().is_stale(last_populated=0.0, now=1e9)     # False
    """

    kind: PolicyKind
    seconds: Optional[float] = None

    def __post_init__(self):
        """Validate interval."""
        if self.kind is PolicyKind.INTERVAL:
            if self.seconds is None or math.isnan(self.seconds):
                raise ConfigError("Interval policy requires a number of seconds")
            if self.seconds < 0:
                raise ConfigError(f"Refresh interval must be >= 0, got {self.seconds}")
        elif self.seconds is not None:
            raise ConfigError(f"{self.kind.name} policy takes no interval")

    @classmethod
    def never(cls) -> "RefreshPolicy":
        """Content never goes stale once populated."""
        return cls(PolicyKind.NEVER)

    @classmethod
    def always(cls) -> "RefreshPolicy":
        """Content is stale on every access."""
        return cls(PolicyKind.ALWAYS)

    @classmethod
    def after(cls, interval: Union[float, int, timedelta]) -> "RefreshPolicy":
        """Content goes stale once ``interval`` has elapsed.

        Args:
            interval: Seconds or timedelta

        Returns:
            RefreshPolicy instance
        """
        if isinstance(interval, timedelta):
            interval = interval.total_seconds()
        return cls(PolicyKind.INTERVAL, float(interval))

    @classmethod
    def coerce(
        cls, value: Union["RefreshPolicy", float, int, timedelta, None]
    ) -> "RefreshPolicy":
        """Build a policy from a policy, seconds, timedelta, or None (never)."""
        if isinstance(value, RefreshPolicy):
            return value
        if value is None:
            return cls.never()
        if isinstance(value, bool) or not isinstance(value, (int, float, timedelta)):
            raise ConfigError(f"Cannot use {value!r} as a refresh interval")
        return cls.after(value)

    @property
    def interval(self) -> Optional[float]:
        """Interval in seconds; None for NEVER, 0 for ALWAYS."""
        if self.kind is PolicyKind.NEVER:
            return None
        if self.kind is PolicyKind.ALWAYS:
            return 0.0
        return self.seconds

    def is_stale(self, last_populated: float, now: float) -> bool:
        """Check staleness of content populated at ``last_populated``.

        Args:
            last_populated: Timestamp of the last successful population
            now: Current timestamp

        Returns:
            True if the content must be repopulated
        """
        if self.kind is PolicyKind.NEVER:
            return False
        if self.kind is PolicyKind.ALWAYS:
            return True
        return (now - last_populated) >= self.seconds

    def valid_until(self, last_populated: float) -> Optional[float]:
        """Get timestamp at which content goes stale; None if never."""
        interval = self.interval
        if interval is None or math.isinf(interval):
            return None
        return last_populated + interval

    def __str__(self) -> str:
        if self.kind is PolicyKind.INTERVAL:
            return f"after {self.seconds:g}s"
        return self.kind.name.lower()


DEFAULT_REFRESH_POLICY = RefreshPolicy.never()


__all__ = ["PolicyKind", "RefreshPolicy", "DEFAULT_REFRESH_POLICY"]
