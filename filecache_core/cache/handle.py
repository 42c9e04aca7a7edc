"""FileCache Handle - Access to a Cached File.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from enum import Enum, auto
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Optional, Union

from filecache_core.cache.entry import CacheEntry
from filecache_core.cache.policy import RefreshPolicy
from filecache_core.cache.populator import PopulateCallback, RefreshOutcome

if TYPE_CHECKING:
    from filecache_core.cache.cache import Cache


class HandleState(Enum):
    """Handle states."""

    PENDING = auto()        # Lazy, decision not taken yet
    MATERIALIZED = auto()   # Decision taken, file ready


class CachedFile:
    """Access right to one cached file.

    Handles returned by ``Cache.get`` are materialized. Handles returned by
    ``Cache.get_lazy`` stay pending until first opened, at which point the
    refresh decision runs once; later opens reuse that result. Use
    ``refresh()`` to re-evaluate freshness explicitly.

    Example:
        report = cache.get_lazy("report.csv", write_report)
        with report.open("r", encoding="utf-8") as f:   # callback runs here
            rows = f.read()
    """

    def __init__(
        self,
        cache: "Cache",
        entry: CacheEntry,
        callback: PopulateCallback,
        state: HandleState = HandleState.MATERIALIZED,
    ):
        self._cache = cache
        self._entry = entry
        self._callback = callback
        self._state = state
        self._lock = threading.RLock()

    @property
    def key(self) -> str:
        return self._entry.key

    @property
    def name(self) -> str:
        return self._entry.name

    @property
    def path(self) -> Path:
        return self._entry.path

    @property
    def entry(self) -> CacheEntry:
        return self._entry

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def is_materialized(self) -> bool:
        return self._state is HandleState.MATERIALIZED

    def materialize(self) -> "CachedFile":
        """Run the deferred refresh decision if still pending.

        A failed attempt, or one suppressed by a lock, leaves the handle
        pending so the next access retries.

        Returns:
            Self for chaining
        """
        with self._lock:
            if self._state is HandleState.PENDING:
                outcome = self._cache._refresh(self._entry, self._callback)
                if outcome is not RefreshOutcome.LOCKED:
                    self._state = HandleState.MATERIALIZED
        return self

    def open(self, mode: str = "rb", encoding: Optional[str] = None) -> IO[Any]:
        """Materialize and open the file for reading.

        Args:
            mode: "rb" or "r"
            encoding: Text encoding for "r"

        Returns:
            Readable stream

        Raises:
            CacheIOError: File missing or unreadable
            PopulateError: First materialization failed
        """
        self.materialize()
        return self._cache.root.open(self.key, self.path, mode=mode, encoding=encoding)

    def read_bytes(self) -> bytes:
        """Read the whole file."""
        with self.open("rb") as f:
            return f.read()

    def read_text(self, encoding: str = "utf-8") -> str:
        """Read the whole file as text."""
        with self.open("r", encoding=encoding) as f:
            return f.read()

    def refresh(self) -> bool:
        """Re-evaluate freshness and repopulate if stale.

        Returns:
            True if the callback ran
        """
        with self._lock:
            outcome = self._cache._refresh(self._entry, self._callback)
            if outcome is not RefreshOutcome.LOCKED:
                self._state = HandleState.MATERIALIZED
        return outcome is RefreshOutcome.POPULATED

    def force_refresh(self) -> bool:
        """Repopulate regardless of freshness, unless locked.

        Returns:
            True if the callback ran
        """
        with self._lock:
            outcome = self._cache._refresh(self._entry, self._callback, force=True)
            if outcome is not RefreshOutcome.LOCKED:
                self._state = HandleState.MATERIALIZED
        return outcome is RefreshOutcome.POPULATED

    def is_stale(self) -> bool:
        """Check if the next refresh would run the callback."""
        return self._cache._is_stale(self._entry)

    def valid_until(self) -> Optional[float]:
        """Get timestamp at which the content goes stale.

        Returns:
            Timestamp, or None if never populated or never stale
        """
        if self._entry.last_populated is None:
            return None
        return self.refresh_policy.valid_until(self._entry.last_populated)

    @property
    def refresh_policy(self) -> RefreshPolicy:
        """Get the effective refresh policy."""
        return self._cache.entry_refresh_policy(self.key)

    @property
    def refresh_interval(self) -> Optional[float]:
        """Get the effective refresh interval in seconds."""
        return self.refresh_policy.interval

    def set_refresh_interval(
        self, value: Union[RefreshPolicy, float, timedelta, None]
    ) -> "CachedFile":
        """Override the cache default for this file."""
        self._cache.set_entry_refresh_interval(self.key, value)
        return self

    def reset_refresh_interval(self) -> "CachedFile":
        """Follow the cache default again."""
        self._cache.reset_entry_refresh_interval(self.key)
        return self

    @property
    def is_locked(self) -> bool:
        return self._entry.is_locked

    @property
    def is_unlocked(self) -> bool:
        return not self._entry.is_locked

    def lock(self) -> None:
        """Suppress refreshes until unlock()."""
        self._cache.lock(self.key)

    def unlock(self) -> None:
        """Allow refreshes again."""
        self._cache.unlock(self.key)

    def remove(self) -> bool:
        """Delete the file.

        Returns:
            True if a file was removed
        """
        removed = self._cache.remove(self.key)
        with self._lock:
            self._state = HandleState.PENDING
        return removed

    def __enter__(self) -> "CachedFile":
        """Hold the lock for a read-modify sequence."""
        self.lock()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.unlock()

    def __repr__(self) -> str:
        return f"CachedFile(key={self.key!r}, state={self._state.name}, locked={self.is_locked})"


__all__ = ["CachedFile", "HandleState"]
