"""Cache module - Entry lifecycle and the cache facade.

This module provides the main cache interface, entries, refresh policies
and file handles.
"""

from filecache_core.cache.policy import (
    DEFAULT_REFRESH_POLICY,
    PolicyKind,
    RefreshPolicy,
)
from filecache_core.cache.entry import CacheEntry
from filecache_core.cache.populator import Populator, needs_population
from filecache_core.cache.handle import CachedFile, HandleState
from filecache_core.cache.cache import (
    Cache,
    CacheConfig,
    CacheStats,
)

__all__ = [
    "DEFAULT_REFRESH_POLICY",
    "PolicyKind",
    "RefreshPolicy",
    "CacheEntry",
    "Populator",
    "needs_population",
    "CachedFile",
    "HandleState",
    "Cache",
    "CacheConfig",
    "CacheStats",
]
