"""
Periodic-refresh value caching with bounded staleness.
"""
from .core import (
    CacheEntry,
    CacheLookup,
    CacheStatus,
    CacheUnavailableError,
    StaleValueError,
)
from .ttl_policies import TTL_CONFIG, LookupCategory, get_ttl_for_category
from .value_cache import RefreshFn, ValueCache
from .manager import CacheManager

__all__ = [
    # Core types
    "CacheEntry",
    "CacheLookup",
    "CacheStatus",
    "CacheUnavailableError",
    "StaleValueError",
    # TTL policies
    "TTL_CONFIG",
    "LookupCategory",
    "get_ttl_for_category",
    # Caches
    "RefreshFn",
    "ValueCache",
    "CacheManager",
]
