"""Tests for entry locks.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import pytest

from filecache_core import Cache, CacheConfig, LockError, LockState
from filecache_core.locking.guard import EntryGuard, ProcessLock
from filecache_core.store.backend import LOCK_DIR_NAME


class TestManualLock:
    """Tests for lock/unlock through the cache."""

    def test_new_file_unlocked(self, cache, counter):
        """Test entries start unlocked."""
        handle = cache.get("file.txt", counter)

        assert handle.is_unlocked
        assert not handle.is_locked
        assert cache.get_entry("file.txt").lock_state is LockState.UNLOCKED

    def test_lock_unlock(self, cache, counter):
        """Test lock transitions."""
        handle = cache.get("file.txt", counter)

        handle.lock()
        assert handle.is_locked
        assert cache.is_locked("file.txt")

        handle.unlock()
        assert handle.is_unlocked

    def test_double_lock(self, cache):
        """Test locking twice fails."""
        cache.lock("file.txt")

        with pytest.raises(LockError):
            cache.lock("file.txt")
        assert cache.is_locked("file.txt")

    def test_unlock_never_locked(self, cache):
        """Test unlocking an unlocked entry fails."""
        with pytest.raises(LockError):
            cache.unlock("file.txt")

    def test_double_unlock(self, cache):
        """Test unlocking twice fails."""
        cache.lock("file.txt")
        cache.unlock("file.txt")

        with pytest.raises(LockError):
            cache.unlock("file.txt")

    def test_lock_suppresses_get(self, cache, counter):
        """Test a locked entry is not repopulated even when due."""
        cache.set_refresh_interval(0)
        handle = cache.get("file.txt", counter)
        cache.lock("file.txt")

        cache.get("file.txt", counter)
        handle.refresh()

        assert counter.calls == 1
        assert handle.read_bytes() == b"1"

    def test_lock_suppresses_force_refresh(self, cache, counter):
        """Test force refresh does not bypass a lock."""
        cache.get("file.txt", counter)
        cache.lock("file.txt")

        cache.force_refresh("file.txt", counter)

        assert counter.calls == 1
        assert cache.get_stats().locked_skips == 1

    def test_lock_suppresses_materialize(self, cache, counter):
        """Test a lazy handle of a locked entry does not populate."""
        cache.get("file.txt", counter)
        cache.set_refresh_interval(0)
        handle = cache.get_lazy("file.txt", counter)
        cache.lock("file.txt")

        assert handle.read_bytes() == b"1"
        assert counter.calls == 1

    def test_unlock_restores_evaluation(self, cache, clock, counter):
        """Test normal evaluation after unlock."""
        cache.set_refresh_interval(60)
        cache.get("file.txt", counter)
        cache.lock("file.txt")
        clock.advance(120)

        cache.get("file.txt", counter)
        assert counter.calls == 1

        cache.unlock("file.txt")
        cache.get("file.txt", counter)
        assert counter.calls == 2

    def test_locked_is_not_stale(self, cache, counter):
        """Test staleness check honours the lock."""
        cache.set_refresh_interval(0)
        handle = cache.get("file.txt", counter)
        assert handle.is_stale()

        handle.lock()
        assert not handle.is_stale()

    def test_remove_locked_refused(self, cache, counter):
        """Test locked files cannot be removed."""
        handle = cache.get("file.txt", counter)
        handle.lock()

        with pytest.raises(LockError):
            handle.remove()
        assert handle.path.exists()

    def test_handle_context_manager(self, cache, counter):
        """Test with-block holds the lock."""
        cache.set_refresh_interval(0)
        handle = cache.get("file.txt", counter)

        with handle:
            assert handle.is_locked
            cache.get("file.txt", counter)

        assert handle.is_unlocked
        assert counter.calls == 1


class TestEntryGuard:
    """Tests for the guard itself."""

    def test_populating_yields_false_when_locked(self):
        """Test population is refused while locked."""
        guard = EntryGuard("k")

        with guard.populating() as allowed:
            assert allowed

        guard.lock()
        with guard.populating() as allowed:
            assert not allowed

    def test_release_all(self):
        """Test release_all unlocks."""
        guard = EntryGuard("k")
        guard.lock()
        guard.release_all()

        assert guard.state is LockState.UNLOCKED


class TestProcessLocks:
    """Tests for OS file locks shared between caches."""

    def test_process_lock_exclusive(self, tmp_path):
        """Test two lock objects on one file exclude each other."""
        first = ProcessLock(tmp_path / "x.lock")
        second = ProcessLock(tmp_path / "x.lock")

        assert first.try_acquire()
        assert not second.try_acquire()

        first.release()
        assert second.try_acquire()
        second.release()

    def test_lock_visible_to_other_cache(self, tmp_path, counter):
        """Test a lock taken by one cache blocks the other."""
        config = CacheConfig(process_locks=True, refresh_policy=0)
        first = Cache.in_directory(tmp_path, config=config)
        second = Cache.in_directory(tmp_path, config=CacheConfig(process_locks=True, refresh_policy=0))

        first.get("a.txt", counter)
        first.lock("a.txt")

        with pytest.raises(LockError):
            second.lock("a.txt")

        second.get("a.txt", counter)
        assert counter.calls == 1

        first.unlock("a.txt")
        second.get("a.txt", counter)
        assert counter.calls == 2

        first.close()
        second.close()

    def test_lock_files_kept_out_of_keys(self, tmp_path, counter):
        """Test sidecar lock files live in a reserved directory."""
        config = CacheConfig(process_locks=True)
        with Cache.in_directory(tmp_path, config=config) as cache:
            cache.lock("a.txt")
            assert (tmp_path / LOCK_DIR_NAME).is_dir()
            cache.unlock("a.txt")

    def test_close_releases_process_locks(self, tmp_path):
        """Test closing a cache frees its OS locks."""
        first = Cache.in_directory(tmp_path, config=CacheConfig(process_locks=True))
        second = Cache.in_directory(tmp_path, config=CacheConfig(process_locks=True))

        first.lock("a.txt")
        first.close()

        second.lock("a.txt")
        second.unlock("a.txt")
        second.close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
