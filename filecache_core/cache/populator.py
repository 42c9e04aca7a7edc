"""FileCache Populator - Staleness Decision and Population.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import time
from enum import Enum, auto
from typing import IO, Any, Callable

from filecache_core.cache.entry import CacheEntry
from filecache_core.cache.policy import RefreshPolicy
from filecache_core.errors import PopulateError
from filecache_core.store.backend import StorageRoot

logger = logging.getLogger(__name__)

PopulateCallback = Callable[[IO[bytes]], Any]


class RefreshOutcome(Enum):
    """Result of one refresh decision."""

    POPULATED = auto()   # Callback ran
    FRESH = auto()       # Content still fresh
    LOCKED = auto()      # Decision suppressed by a lock


def needs_population(
    entry: CacheEntry,
    policy: RefreshPolicy,
    now: float,
    force: bool = False,
    file_exists: bool = True,
) -> bool:
    """Decide whether an entry must be populated.

    Checked in order: a locked entry is never stale, even when forced; a
    forced refresh is always stale; an entry with no population timestamp
    or no file on disk is stale; otherwise the policy decides.

    Args:
        entry: Entry to check
        policy: Effective refresh policy
        now: Current timestamp
        force: Ignore the policy
        file_exists: Whether the cached file is on disk

    Returns:
        True if the callback must run
    """
    if entry.is_locked:
        return False
    if force:
        return True
    if entry.last_populated is None or not file_exists:
        return True
    return policy.is_stale(entry.last_populated, now)


class Populator:
    """Runs populate callbacks against an entry's file.

    The timestamp is stamped only after the callback returned and the
    content was committed, so a failed attempt leaves the entry eligible
    for the next access.
    """

    def __init__(self, root: StorageRoot, clock: Callable[[], float] = time.time):
        """Initialize populator.

        Args:
            root: Storage root owning the files
            clock: Timestamp source
        """
        self.root = root
        self.clock = clock

    def populate(self, entry: CacheEntry, callback: PopulateCallback) -> None:
        """Write an entry's file through ``callback``.

        Args:
            entry: Entry to populate
            callback: Called with a writable binary stream

        Raises:
            PopulateError: Callback raised
            CacheIOError: File could not be written
        """
        logger.debug(f"Populating {entry.key}")
        pending = self.root.begin_write(entry.key, entry.path)
        try:
            callback(pending.stream)
        except Exception as e:
            pending.abort()
            logger.warning(f"Populate callback for {entry.key} failed: {e!r}")
            raise PopulateError(entry.key, e) from e
        except BaseException:
            pending.abort()
            raise
        pending.commit()
        entry.mark_populated(self.clock())


__all__ = ["Populator", "PopulateCallback", "RefreshOutcome", "needs_population"]
