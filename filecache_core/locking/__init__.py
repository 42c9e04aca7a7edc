"""Locking module - Per-entry guards and OS file locks."""

from filecache_core.locking.guard import EntryGuard, LockState, ProcessLock

__all__ = ["EntryGuard", "LockState", "ProcessLock"]
