"""FileCache Cache - Main Cache Implementation.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import fnmatch
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from filecache_core.cache.entry import CacheEntry
from filecache_core.cache.handle import CachedFile, HandleState
from filecache_core.cache.policy import DEFAULT_REFRESH_POLICY, RefreshPolicy
from filecache_core.cache.populator import (
    PopulateCallback,
    Populator,
    RefreshOutcome,
    needs_population,
)
from filecache_core.errors import CacheError, LockError
from filecache_core.locking.guard import EntryGuard
from filecache_core.store.backend import StorageRoot
from filecache_core.store.file import DirectoryRoot, TemporaryRoot

logger = logging.getLogger(__name__)

IntervalValue = Union[RefreshPolicy, float, int, timedelta, None]


@dataclass
class CacheConfig:
    """Cache configuration.

    Attributes:
        name: Cache name, used in logs
        refresh_policy: Default refresh policy, or seconds / timedelta
        atomic_writes: Publish populations with an atomic replace
        process_locks: Back entry locks with OS file locks
        trust_existing_files: Seed timestamps from the mtime of files
            already on disk when an entry is first created
        enable_stats: Enable statistics
        clock: Timestamp source, must agree with file mtimes
    """

    name: str = "filecache"
    refresh_policy: IntervalValue = DEFAULT_REFRESH_POLICY
    atomic_writes: bool = True
    process_locks: bool = False
    trust_existing_files: bool = True
    enable_stats: bool = True
    clock: Callable[[], float] = time.time

    def __post_init__(self):
        self.refresh_policy = RefreshPolicy.coerce(self.refresh_policy)


@dataclass
class CacheStats:
    """Cache statistics.

    Attributes:
        hits: Retrievals served without running the callback
        populations: Successful callback runs
        failures: Failed callback runs
        locked_skips: Refreshes suppressed by a lock
        forced: Forced refreshes that ran
        entry_count: Current entry count
        started_at: When cache started
    """

    hits: int = 0
    populations: int = 0
    failures: int = 0
    locked_skips: int = 0
    forced: int = 0
    entry_count: int = 0
    started_at: Optional[datetime] = None

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate."""
        total = self.hits + self.populations + self.failures
        return self.hits / total if total > 0 else 0.0

    def reset(self) -> None:
        """Reset statistics."""
        self.hits = 0
        self.populations = 0
        self.failures = 0
        self.locked_skips = 0
        self.forced = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "populations": self.populations,
            "failures": self.failures,
            "locked_skips": self.locked_skips,
            "forced": self.forced,
            "entry_count": self.entry_count,
            "hit_rate": self.hit_rate,
        }


class Cache:
    """Get-or-populate cache of files in a directory.

    Features:
    - Cache-wide refresh policy with per-file overrides
    - Eager and lazy retrieval
    - Forced refresh
    - Manual locks suppressing refresh
    - At most one population in flight per file
    - Temporary or persistent storage

    Example:
        with Cache.temporary() as cache:
            cache.set_refresh_interval(60)

            data = cache.get("data.json", lambda f: f.write(download()))
            with data.open() as f:
                payload = f.read()

            report = cache.get_lazy("report.txt", write_report)
    """

    def __init__(
        self,
        root: Optional[StorageRoot] = None,
        config: Optional[CacheConfig] = None,
    ):
        """Initialize cache.

        Args:
            root: Storage root, a private temporary directory if None
            config: Cache configuration
        """
        self.config = config or CacheConfig()
        self.root = root or TemporaryRoot(atomic_writes=self.config.atomic_writes)
        self._default_policy: RefreshPolicy = self.config.refresh_policy
        self._populator = Populator(self.root, clock=self.config.clock)

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._stats = CacheStats(started_at=datetime.now())
        self._closed = False

        logger.info(f"Cache {self.config.name} opened at {self.root.path}")

    @classmethod
    def temporary(
        cls,
        prefix: str = TemporaryRoot.DEFAULT_PREFIX,
        config: Optional[CacheConfig] = None,
    ) -> "Cache":
        """Create a cache in a temporary directory removed on close."""
        config = config or CacheConfig()
        return cls(TemporaryRoot(prefix, atomic_writes=config.atomic_writes), config)

    @classmethod
    def in_directory(
        cls,
        path: Union[str, Path],
        config: Optional[CacheConfig] = None,
    ) -> "Cache":
        """Create a cache over a directory that outlives it."""
        config = config or CacheConfig()
        return cls(DirectoryRoot(path, atomic_writes=config.atomic_writes), config)

    @property
    def path(self) -> Path:
        """Get the storage directory."""
        return self.root.path

    @property
    def is_temporary(self) -> bool:
        return self.root.is_temporary

    @property
    def closed(self) -> bool:
        return self._closed

    # Refresh policy

    @property
    def refresh_policy(self) -> RefreshPolicy:
        """Get the cache-wide default policy."""
        return self._default_policy

    @property
    def refresh_interval(self) -> Optional[float]:
        """Get the default interval in seconds; None means never."""
        return self._default_policy.interval

    def set_refresh_interval(self, value: IntervalValue) -> "Cache":
        """Set the cache-wide default.

        Entries with an override keep it.

        Args:
            value: Policy, seconds, timedelta, or None for never

        Returns:
            Self for chaining
        """
        policy = RefreshPolicy.coerce(value)
        with self._lock:
            self._default_policy = policy
        logger.debug(f"Cache {self.config.name} refresh policy set to {policy}")
        return self

    def reset_refresh_interval(self) -> "Cache":
        """Restore the library default (never)."""
        return self.set_refresh_interval(DEFAULT_REFRESH_POLICY)

    def entry_refresh_policy(self, key: str) -> RefreshPolicy:
        """Get the policy in force for a key."""
        entry = self._entry(key)
        return entry.effective_policy(self._default_policy)

    def set_entry_refresh_interval(self, key: str, value: IntervalValue) -> "Cache":
        """Override the default for one key."""
        policy = RefreshPolicy.coerce(value)
        entry = self._entry(key)
        with entry.guard.exclusive():
            entry.policy_override = policy
        return self

    def reset_entry_refresh_interval(self, key: str) -> "Cache":
        """Make a key follow the cache default again."""
        entry = self._entry(key)
        with entry.guard.exclusive():
            entry.policy_override = None
        return self

    # Retrieval

    def get(self, key: str, callback: PopulateCallback) -> CachedFile:
        """Get a fresh file, populating it first if stale.

        Args:
            key: Relative path of the file
            callback: Writes the content to the binary stream it receives

        Returns:
            Materialized handle

        Raises:
            InvalidKeyError: Malformed key
            PopulateError: Callback raised
            CacheIOError: Storage access failed
        """
        entry = self._entry(key)
        self._refresh(entry, callback)
        return CachedFile(self, entry, callback, HandleState.MATERIALIZED)

    def get_lazy(self, key: str, callback: PopulateCallback) -> CachedFile:
        """Get a handle without populating.

        The refresh decision runs on the first open of the handle.

        Raises:
            InvalidKeyError: Malformed key
        """
        entry = self._entry(key)
        return CachedFile(self, entry, callback, HandleState.PENDING)

    def force_refresh(self, key: str, callback: PopulateCallback) -> CachedFile:
        """Populate regardless of freshness, unless locked."""
        entry = self._entry(key)
        self._refresh(entry, callback, force=True)
        return CachedFile(self, entry, callback, HandleState.MATERIALIZED)

    # Locking

    def lock(self, key: str) -> None:
        """Suppress refreshes of a key.

        Raises:
            LockError: Already locked
        """
        entry = self._entry(key)
        entry.guard.lock()
        logger.debug(f"Locked {entry.key}")

    def unlock(self, key: str) -> None:
        """Allow refreshes of a key again.

        Raises:
            LockError: Not locked
        """
        entry = self._entry(key)
        entry.guard.unlock()
        logger.debug(f"Unlocked {entry.key}")

    def is_locked(self, key: str) -> bool:
        return self._entry(key).is_locked

    # Inspection and removal

    def remove(self, key: str) -> bool:
        """Delete a cached file and forget its timestamp.

        Returns:
            True if a file was removed

        Raises:
            LockError: Entry is locked
        """
        entry = self._entry(key)
        with entry.guard.exclusive():
            if entry.is_locked:
                raise LockError(entry.key, "cannot remove a locked entry")
            removed = self.root.remove(entry.key, entry.path)
            entry.forget()
        return removed

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Get an existing entry without creating one."""
        normalized, _ = self.root.resolve(key)
        with self._lock:
            return self._entries.get(normalized)

    def keys(self, pattern: Optional[str] = None) -> List[str]:
        """Get keys of known entries.

        Args:
            pattern: Optional glob pattern

        Returns:
            List of keys
        """
        with self._lock:
            if pattern is None:
                return list(self._entries.keys())
            return [k for k in self._entries.keys() if fnmatch.fnmatch(k, pattern)]

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        self._stats.entry_count = len(self._entries)
        return self._stats

    def reset_stats(self) -> None:
        """Reset statistics."""
        self._stats.reset()

    def close(self) -> None:
        """Release locks and the storage root.

        A temporary directory is removed with everything in it.
        """
        if self._closed:
            return
        self._closed = True
        with self._lock:
            for entry in self._entries.values():
                entry.guard.release_all()
        self.root.close()
        logger.info(f"Cache {self.config.name} closed")

    # Internals

    def _entry(self, key: str) -> CacheEntry:
        """Locate or create the entry for a key."""
        if self._closed:
            raise CacheError(f"Cache {self.config.name} is closed")
        normalized, path = self.root.resolve(key)
        with self._lock:
            entry = self._entries.get(normalized)
            if entry is None:
                lock_path = self.root.lock_path(normalized) if self.config.process_locks else None
                entry = CacheEntry(
                    key=normalized,
                    path=path,
                    guard=EntryGuard(normalized, lock_path),
                    created_at=self.config.clock(),
                )
                if self.config.trust_existing_files:
                    entry.last_populated = self.root.mtime(path)
                self._entries[normalized] = entry
                logger.debug(f"Created entry {normalized} (last_populated={entry.last_populated})")
            return entry

    def _is_stale(self, entry: CacheEntry) -> bool:
        with entry.guard.exclusive():
            return needs_population(
                entry,
                entry.effective_policy(self._default_policy),
                self.config.clock(),
                file_exists=self.root.exists(entry.path),
            )

    def _refresh(
        self, entry: CacheEntry, callback: PopulateCallback, force: bool = False
    ) -> RefreshOutcome:
        """Run the refresh decision and populate if needed.

        Returns:
            LOCKED if a lock suppressed the decision, else POPULATED or FRESH
        """
        with entry.guard.populating() as allowed:
            if not allowed:
                logger.debug(f"Skipping refresh of locked entry {entry.key}")
                self._record("locked_skips")
                return RefreshOutcome.LOCKED

            stale = needs_population(
                entry,
                entry.effective_policy(self._default_policy),
                self.config.clock(),
                force=force,
                file_exists=self.root.exists(entry.path),
            )
            if not stale:
                self._record("hits")
                return RefreshOutcome.FRESH

            try:
                self._populator.populate(entry, callback)
            except CacheError:
                self._record("failures")
                raise
            self._record("populations")
            if force:
                self._record("forced")
            return RefreshOutcome.POPULATED

    def _record(self, counter: str) -> None:
        if self.config.enable_stats:
            with self._lock:
                setattr(self._stats, counter, getattr(self._stats, counter) + 1)

    def __contains__(self, key: str) -> bool:
        """Check if a key has an entry."""
        return self.get_entry(key) is not None

    def __len__(self) -> int:
        """Get entry count."""
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        """Iterate over keys."""
        return iter(self.keys())

    def __enter__(self) -> "Cache":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()

    def __repr__(self) -> str:
        return f"Cache(name={self.config.name!r}, path={self.root.path}, entries={len(self._entries)})"


__all__ = ["Cache", "CacheConfig", "CacheStats"]
