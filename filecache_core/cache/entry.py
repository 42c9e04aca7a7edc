"""FileCache Entry - Per-Key Freshness Bookkeeping.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from filecache_core.cache.policy import RefreshPolicy
from filecache_core.locking.guard import EntryGuard, LockState


@dataclass
class CacheEntry:
    """Bookkeeping for one cached file.

    Attributes:
        key: Normalized key, unique within a cache
        path: File path under the storage root
        guard: Mutual exclusion and manual lock state
        last_populated: Time of the last successful population
        policy_override: Per-entry policy, wins over the cache default
        populate_count: Successful populations by this cache
        created_at: When the entry was created
    """

    key: str
    path: Path
    guard: EntryGuard
    last_populated: Optional[float] = None
    policy_override: Optional[RefreshPolicy] = None
    populate_count: int = 0
    created_at: float = field(default_factory=time.time)

    @property
    def name(self) -> str:
        """Get the file name."""
        return self.path.name

    @property
    def lock_state(self) -> LockState:
        """Get manual lock state."""
        return self.guard.state

    @property
    def is_locked(self) -> bool:
        """Check if refresh is suppressed."""
        return self.guard.state is LockState.LOCKED

    @property
    def is_populated(self) -> bool:
        """Check if a population timestamp is known."""
        return self.last_populated is not None

    def effective_policy(self, default: RefreshPolicy) -> RefreshPolicy:
        """Resolve the policy in force.

        Args:
            default: Cache-wide default

        Returns:
            The override if set, otherwise the default
        """
        return self.policy_override if self.policy_override is not None else default

    def mark_populated(self, now: float) -> None:
        """Record a successful population."""
        self.last_populated = now
        self.populate_count += 1

    def forget(self) -> None:
        """Drop the population timestamp, e.g. after the file was removed."""
        self.last_populated = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary.

        Returns:
            Dictionary representation
        """
        return {
            "key": self.key,
            "path": str(self.path),
            "last_populated": self.last_populated,
            "policy_override": str(self.policy_override) if self.policy_override else None,
            "lock_state": self.lock_state.name,
            "populate_count": self.populate_count,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return (
            f"CacheEntry(key={self.key!r}, state={self.lock_state.name}, "
            f"last_populated={self.last_populated})"
        )


__all__ = ["CacheEntry"]
