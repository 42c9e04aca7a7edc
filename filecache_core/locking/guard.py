"""FileCache Entry Guard - Per-Entry Locking.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Each entry owns an EntryGuard. The guard serializes the refresh decision and
population of its entry inside the process, and carries the manual
Unlocked/Locked state. When process locks are enabled it also holds an OS
file lock on a sidecar file, so separate processes (or separate caches over
one directory) see each other's locks through the same interface.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from enum import Enum, auto
from pathlib import Path
from typing import Iterator, Optional

import portalocker

from filecache_core.errors import CacheIOError, LockError

logger = logging.getLogger(__name__)


class LockState(Enum):
    """Manual lock states."""

    UNLOCKED = auto()
    LOCKED = auto()


class ProcessLock:
    """Non-blocking exclusive OS lock on a sidecar file.

    Example:
        lock = ProcessLock(Path("/var/cache/app/.filecache-locks/ab12.lock"))
        if lock.try_acquire():
            try:
                ...
            finally:
                lock.release()
    """

    def __init__(self, path: Path):
        """Initialize process lock.

        Args:
            path: Sidecar lock file, created on first acquire
        """
        self.path = path
        self._lock = portalocker.Lock(
            str(path),
            mode="a",
            timeout=0,
            fail_when_locked=True,
        )

    @property
    def is_held(self) -> bool:
        """Check if this instance holds the lock."""
        return self._lock.fh is not None

    def try_acquire(self) -> bool:
        """Acquire without waiting.

        Returns:
            True if acquired, False if held by someone else
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._lock.acquire()
        except portalocker.LockException:
            return False
        except OSError as e:
            raise CacheIOError(f"Cannot open lock file {self.path}: {e}", path=self.path) from e
        return True

    def release(self) -> None:
        """Release the lock if held."""
        if self.is_held:
            self._lock.release()

    def __repr__(self) -> str:
        return f"ProcessLock(path={self.path}, held={self.is_held})"


class EntryGuard:
    """Mutual exclusion and manual lock state for one cache entry.

    The in-process mutex is reentrant so a populate callback that touches
    the same entry does not deadlock its own thread.
    """

    def __init__(self, key: str, process_lock_path: Optional[Path] = None):
        """Initialize guard.

        Args:
            key: Entry key, used in error messages
            process_lock_path: Sidecar file for cross-process locking
        """
        self.key = key
        self._mutex = threading.RLock()
        self._process_lock = ProcessLock(process_lock_path) if process_lock_path else None
        self._state = LockState.UNLOCKED

    @property
    def state(self) -> LockState:
        """Get manual lock state."""
        return self._state

    @property
    def uses_process_lock(self) -> bool:
        """Check if an OS file lock backs this guard."""
        return self._process_lock is not None

    def lock(self) -> None:
        """Transition Unlocked -> Locked.

        Raises:
            LockError: Already locked, or held by another process
        """
        with self._mutex:
            if self._state is LockState.LOCKED:
                raise LockError(self.key, "already locked")
            if self._process_lock and not self._process_lock.try_acquire():
                logger.warning(f"Lock on {self.key} is held by another process")
                raise LockError(self.key, "locked by another process")
            self._state = LockState.LOCKED

    def unlock(self) -> None:
        """Transition Locked -> Unlocked.

        Raises:
            LockError: Already unlocked
        """
        with self._mutex:
            if self._state is LockState.UNLOCKED:
                raise LockError(self.key, "already unlocked")
            if self._process_lock:
                self._process_lock.release()
            self._state = LockState.UNLOCKED

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the in-process mutex."""
        with self._mutex:
            yield

    @contextmanager
    def populating(self) -> Iterator[bool]:
        """Serialize a refresh of this entry.

        Yields:
            False if the entry is locked here or elsewhere, True otherwise
        """
        with self._mutex:
            if self._state is LockState.LOCKED:
                yield False
                return
            if self._process_lock is None:
                yield True
                return
            if not self._process_lock.try_acquire():
                logger.debug(f"Skipping refresh of {self.key}: locked by another process")
                yield False
                return
            try:
                yield True
            finally:
                self._process_lock.release()

    def release_all(self) -> None:
        """Drop any held OS lock, used when the cache closes."""
        with self._mutex:
            if self._process_lock:
                self._process_lock.release()
            self._state = LockState.UNLOCKED

    def __repr__(self) -> str:
        return f"EntryGuard(key={self.key!r}, state={self._state.name})"


__all__ = ["LockState", "ProcessLock", "EntryGuard"]
