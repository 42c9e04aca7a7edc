"""Tests for refresh policies and their resolution.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from datetime import timedelta

import pytest

from filecache_core import ConfigError, PolicyKind, RefreshPolicy
from filecache_core.cache.policy import DEFAULT_REFRESH_POLICY


class TestRefreshPolicy:
    """Tests for RefreshPolicy values."""

    def test_never(self):
        """Test never policy stays fresh."""
        policy = RefreshPolicy.never()
        assert not policy.is_stale(last_populated=0.0, now=1e12)
        assert policy.interval is None
        assert policy.valid_until(100.0) is None

    def test_always(self):
        """Test always policy is stale immediately."""
        policy = RefreshPolicy.always()
        assert policy.is_stale(last_populated=100.0, now=100.0)
        assert policy.interval == 0.0

    def test_interval_boundary(self):
        """Test interval is stale exactly when elapsed."""
        policy = RefreshPolicy.after(60)
        assert not policy.is_stale(last_populated=0.0, now=59.9)
        assert policy.is_stale(last_populated=0.0, now=60.0)
        assert policy.valid_until(10.0) == 70.0

    def test_zero_interval_behaves_like_always(self):
        """Test zero interval is always stale."""
        policy = RefreshPolicy.after(0)
        assert policy.is_stale(last_populated=5.0, now=5.0)

    def test_timedelta(self):
        """Test timedelta intervals."""
        policy = RefreshPolicy.after(timedelta(minutes=2))
        assert policy.kind is PolicyKind.INTERVAL
        assert policy.seconds == 120.0

    def test_negative_interval_rejected(self):
        """Test negative interval raises."""
        with pytest.raises(ConfigError):
            RefreshPolicy.after(-1)

    def test_coerce(self):
        """Test coercion from plain values."""
        assert RefreshPolicy.coerce(None) == RefreshPolicy.never()
        assert RefreshPolicy.coerce(30) == RefreshPolicy.after(30)
        assert RefreshPolicy.coerce(timedelta(seconds=5)) == RefreshPolicy.after(5)

        policy = RefreshPolicy.always()
        assert RefreshPolicy.coerce(policy) is policy

        with pytest.raises(ConfigError):
            RefreshPolicy.coerce("soon")
        with pytest.raises(ConfigError):
            RefreshPolicy.coerce(True)

    def test_library_default_is_never(self):
        """Test library default."""
        assert DEFAULT_REFRESH_POLICY.kind is PolicyKind.NEVER

    def test_str(self):
        """Test readable form."""
        assert str(RefreshPolicy.after(1.5)) == "after 1.5s"
        assert str(RefreshPolicy.never()) == "never"


class TestPolicyResolution:
    """Tests for cache default vs per-entry override."""

    def test_cache_default(self, cache):
        """Test cache default applies to new entries."""
        assert cache.refresh_interval is None

        cache.set_refresh_interval(10)
        assert cache.refresh_policy == RefreshPolicy.after(10)
        assert cache.entry_refresh_policy("a.txt") == RefreshPolicy.after(10)

    def test_reset_cache_default(self, cache):
        """Test reset restores never."""
        cache.set_refresh_interval(10).reset_refresh_interval()
        assert cache.refresh_policy == RefreshPolicy.never()

    def test_override_wins_over_later_default(self, cache):
        """Test override is immune to later cache changes."""
        cache.set_entry_refresh_interval("a.txt", 5)
        cache.set_refresh_interval(100)

        assert cache.entry_refresh_policy("a.txt") == RefreshPolicy.after(5)
        assert cache.entry_refresh_policy("b.txt") == RefreshPolicy.after(100)

    def test_reset_override_follows_default(self, cache):
        """Test reset entry follows later cache changes."""
        cache.set_entry_refresh_interval("a.txt", 5)
        cache.reset_entry_refresh_interval("a.txt")
        cache.set_refresh_interval(42)

        assert cache.entry_refresh_policy("a.txt") == RefreshPolicy.after(42)

    def test_handle_override(self, cache, counter):
        """Test override through a handle."""
        handle = cache.get("a.txt", counter).set_refresh_interval(10)
        assert handle.refresh_interval == 10

        handle.reset_refresh_interval()
        assert handle.refresh_interval == cache.refresh_interval

    def test_default_change_does_not_populate(self, cache, clock, counter):
        """Test changing the default only affects future evaluations."""
        cache.get("a.txt", counter)
        cache.set_refresh_interval(0)
        assert counter.calls == 1

        cache.get("a.txt", counter)
        assert counter.calls == 2

    def test_config_policy(self, clock):
        """Test default policy from config."""
        from filecache_core import Cache, CacheConfig

        with Cache.temporary(config=CacheConfig(refresh_policy=30, clock=clock)) as cache:
            assert cache.refresh_policy == RefreshPolicy.after(30)
