"""
Named collection of value caches owned by one runtime.
"""
import threading
import logging
from typing import Any, Dict, List, Optional

from gamecore.utils.clock import Clock, monotonic_clock

from .core import CacheLookup
from .ttl_policies import LookupCategory, get_ttl_for_category
from .value_cache import RefreshFn, ValueCache

logger = logging.getLogger("cache.manager")


class CacheManager:
    """
    Keeps one ValueCache per name with:
    - TTL from an explicit value or a lookup category
    - Invalidation by name, by substring, or all at once
    - Aggregate statistics
    """

    def __init__(self, clock: Optional[Clock] = None):
        """
        Initialize the cache manager.

        Args:
            clock: Time source shared by every cache created here
        """
        self._clock = clock or monotonic_clock
        self._caches: Dict[str, ValueCache] = {}
        self._lock = threading.RLock()

    def register(
        self,
        name: str,
        refresh: RefreshFn,
        ttl: Optional[float] = None,
        category: Optional[LookupCategory] = None,
        retry_interval: Optional[float] = None,
    ) -> ValueCache:
        """
        Create and register a cache.

        Args:
            name: Unique cache name
            refresh: Callback returning (value, ok)
            ttl: Explicit TTL in seconds (wins over category)
            category: Lookup category for TTL/retry defaults
            retry_interval: Explicit retry interval (wins over category)

        Raises:
            ValueError: If a cache with this name already exists
        """
        if category is not None:
            category_ttl, category_retry = get_ttl_for_category(category)
            ttl = ttl if ttl is not None else category_ttl
            retry_interval = retry_interval if retry_interval is not None else category_retry

        with self._lock:
            if name in self._caches:
                raise ValueError(f"Cache already registered: {name}")
            cache = ValueCache(
                refresh,
                ttl,
                name=name,
                clock=self._clock,
                retry_interval=retry_interval,
            )
            self._caches[name] = cache
        logger.info(f"Registered cache: {name} [ttl={cache.ttl}s]")
        return cache

    def cache(self, name: str) -> ValueCache:
        """Return the cache registered under ``name`` (KeyError if missing)."""
        with self._lock:
            return self._caches[name]

    def get(self, name: str) -> CacheLookup:
        """Shortcut for ``manager.cache(name).get()``."""
        return self.cache(name).get()

    def unregister(self, name: str) -> bool:
        """
        Drop a cache.

        Returns:
            True if the cache existed
        """
        with self._lock:
            removed = self._caches.pop(name, None)
        if removed is not None:
            logger.info(f"Unregistered cache: {name}")
        return removed is not None

    def invalidate(self, name: str) -> bool:
        """
        Force the named cache to refresh on its next get().

        Returns:
            True if the cache was found
        """
        with self._lock:
            cache = self._caches.get(name)
        if cache is None:
            return False
        cache.force_invalidate()
        return True

    def invalidate_pattern(self, pattern: str) -> int:
        """
        Invalidate all caches whose name contains ``pattern``.

        Returns:
            Number of caches invalidated
        """
        with self._lock:
            matching = [c for n, c in self._caches.items() if pattern in n]
        for cache in matching:
            cache.force_invalidate()
        if matching:
            logger.info(f"Invalidated {len(matching)} caches matching '{pattern}'")
        return len(matching)

    def invalidate_all(self) -> int:
        """Invalidate every cache. Returns the number invalidated."""
        return self.invalidate_pattern("")

    def names(self) -> List[str]:
        with self._lock:
            return list(self._caches)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            caches = list(self._caches.values())

        per_cache = {c.name: c.get_stats() for c in caches}
        hits_fresh = sum(s["hits_fresh"] for s in per_cache.values())
        hits_stale = sum(s["hits_stale"] for s in per_cache.values())
        unavailable = sum(s["unavailable"] for s in per_cache.values())
        total = hits_fresh + hits_stale + unavailable
        fresh_rate = (hits_fresh / total * 100) if total > 0 else 0

        return {
            "entries": len(caches),
            "hits_fresh": hits_fresh,
            "hits_stale": hits_stale,
            "unavailable": unavailable,
            "refreshes": sum(s["refreshes"] for s in per_cache.values()),
            "refresh_failures": sum(s["refresh_failures"] for s in per_cache.values()),
            "fresh_rate_percent": round(fresh_rate, 1),
            "caches": per_cache,
        }
