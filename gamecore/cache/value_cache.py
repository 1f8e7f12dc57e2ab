"""
Periodic-refresh cache around an expensive or volatile lookup.

The refresh callback runs synchronously inside get() once the TTL has
elapsed. There are no background timers: a ValueCache never writes to its
entry from anywhere but a get() (or force_invalidate()) call.
"""
import threading
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from config.settings import settings
from gamecore.utils.clock import Clock, monotonic_clock

from .core import CacheEntry, CacheLookup, CacheStatus, UNAVAILABLE

logger = logging.getLogger("cache.value_cache")

# () -> (value, ok)
RefreshFn = Callable[[], Tuple[Any, bool]]


class ValueCache:
    """
    Cheap get() over a refresh() that may be slow or may fail.

    - get() returns a value at most ``ttl`` old while refreshes succeed
    - A failed refresh keeps the last good value and marks it stale
    - A refresh already in progress (re-entrant or concurrent get) is never
      waited on; the prior value is returned immediately

    Usage:
        identity = ValueCache(lambda: (lookup_identity(player), True), ttl=5.0)
        handle, stale = identity.get()
    """

    def __init__(
        self,
        refresh: RefreshFn,
        ttl: Optional[float] = None,
        *,
        name: str = "value",
        clock: Optional[Clock] = None,
        retry_interval: Optional[float] = None,
    ):
        """
        Initialize the cache.

        Args:
            refresh: Callback returning (value, ok); ok=False is a transient failure
            ttl: Seconds a value stays fresh (settings default if None)
            name: Label used in logs and stats
            clock: Time source in seconds (monotonic clock if None)
            retry_interval: Minimum seconds between failed refresh attempts
        """
        self.name = name
        self.ttl = ttl if ttl is not None else settings.cache_default_ttl_seconds
        if self.ttl <= 0:
            raise ValueError(f"ttl must be positive, got {self.ttl}")
        self.retry_interval = (
            retry_interval
            if retry_interval is not None
            else settings.cache_retry_interval_seconds
        )
        self._refresh_fn = refresh
        self._clock = clock or monotonic_clock
        self._entry: Optional[CacheEntry] = None
        # Held only while a refresh runs; never waited on.
        self._refresh_lock = threading.Lock()

        self._stats = {
            "hits_fresh": 0,
            "hits_stale": 0,
            "unavailable": 0,
            "refreshes": 0,
            "refresh_failures": 0,
            "refreshes_skipped": 0,
        }

    def get(self) -> CacheLookup:
        """
        Return the cached value, refreshing first if the TTL has elapsed.

        Never raises because of the refresh callback.
        """
        now = self._clock()
        entry = self._entry
        if entry is None:
            entry = CacheEntry(value=None, last_refreshed_at=None, ttl=self.ttl)
            self._entry = entry

        if self._refresh_due(entry, now):
            if self._refresh_lock.acquire(blocking=False):
                try:
                    self._refresh(entry, now)
                finally:
                    self._refresh_lock.release()
            else:
                logger.debug(f"Refresh already in progress: {self.name}")
                self._stats["refreshes_skipped"] += 1

        lookup = self._lookup(entry, now)
        if lookup.status is CacheStatus.FRESH:
            self._stats["hits_fresh"] += 1
        elif lookup.status is CacheStatus.STALE:
            self._stats["hits_stale"] += 1
        else:
            self._stats["unavailable"] += 1
        return lookup

    def peek(self) -> CacheLookup:
        """Current value and staleness without triggering a refresh."""
        if self._entry is None:
            return UNAVAILABLE
        return self._lookup(self._entry, self._clock())

    def is_stale(self) -> bool:
        """True if the value on hand is past its TTL or its last refresh failed."""
        return self.peek().stale

    def force_invalidate(self) -> None:
        """
        Make the next get() refresh unconditionally.

        Used for external reset events (e.g. the identity behind the value
        changed). The prior value is kept as a stale fallback.
        """
        entry = self._entry
        if entry is None:
            return
        entry.last_refreshed_at = None
        entry.last_attempt_at = None
        logger.info(f"Invalidated cache: {self.name}")

    def _refresh_due(self, entry: CacheEntry, now: float) -> bool:
        if not entry.is_expired(now):
            return False
        # Back off between failed attempts so a dead source isn't hit on every get
        if (
            entry.last_error is not None
            and entry.last_attempt_at is not None
            and now - entry.last_attempt_at < self.retry_interval
        ):
            return False
        return True

    def _refresh(self, entry: CacheEntry, now: float) -> None:
        entry.last_attempt_at = now
        try:
            result = self._refresh_fn()
        except Exception as e:
            logger.warning(f"Refresh raised for {self.name}: {e}")
            self._mark_failed(entry, f"{type(e).__name__}: {e}")
            return

        try:
            value, ok = result
        except (TypeError, ValueError):
            logger.warning(f"Refresh for {self.name} did not return (value, ok): {result!r}")
            self._mark_failed(entry, "refresh returned a malformed result")
            return

        if not ok:
            logger.warning(f"Refresh failed for {self.name}, keeping last value")
            self._mark_failed(entry, "source unavailable")
            return

        entry.value = value
        entry.has_value = True
        entry.last_refreshed_at = now
        entry.stale = False
        entry.last_error = None
        entry.refresh_count += 1
        self._stats["refreshes"] += 1
        logger.debug(f"Refreshed {self.name} at {now:.3f}")

    def _mark_failed(self, entry: CacheEntry, error: str) -> None:
        entry.stale = True
        entry.last_error = error
        entry.failure_count += 1
        self._stats["refresh_failures"] += 1

    def _lookup(self, entry: CacheEntry, now: float) -> CacheLookup:
        if not entry.has_value:
            return UNAVAILABLE
        stale = entry.stale or entry.is_expired(now)
        return CacheLookup(
            value=entry.value,
            stale=stale,
            status=CacheStatus.STALE if stale else CacheStatus.FRESH,
            age=entry.age(now),
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        entry = self._entry
        stats: Dict[str, Any] = dict(self._stats)
        stats.update({
            "name": self.name,
            "ttl": self.ttl,
            "has_value": bool(entry and entry.has_value),
            "stale": self.is_stale(),
            "last_error": entry.last_error if entry else None,
        })
        return stats
