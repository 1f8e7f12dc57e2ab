"""
Core cache data structures.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class CacheStatus(Enum):
    """What a lookup handed back."""
    FRESH = "fresh"              # Within TTL, last refresh succeeded
    STALE = "stale"              # Last known good value, refresh failed or pending
    UNAVAILABLE = "unavailable"  # Never refreshed successfully


class CacheUnavailableError(LookupError):
    """Raised by CacheLookup.unwrap() when no value was ever obtained."""


class StaleValueError(LookupError):
    """Raised by CacheLookup.unwrap(allow_stale=False) on a stale value."""


@dataclass
class CacheEntry:
    """
    A cached value with refresh bookkeeping.

    Owned by exactly one ValueCache and only mutated by its refresh.
    ``last_refreshed_at`` is None until the first successful refresh and
    after a forced invalidation.
    """
    value: Any
    last_refreshed_at: Optional[float]
    ttl: float
    stale: bool = False
    has_value: bool = False
    last_attempt_at: Optional[float] = None
    last_error: Optional[str] = None
    refresh_count: int = 0
    failure_count: int = 0

    def age(self, now: float) -> Optional[float]:
        """Seconds since the last successful refresh."""
        if self.last_refreshed_at is None:
            return None
        return now - self.last_refreshed_at

    def is_expired(self, now: float) -> bool:
        """True once the value reached its TTL (or was invalidated)."""
        if self.last_refreshed_at is None:
            return True
        return now - self.last_refreshed_at >= self.ttl


@dataclass(frozen=True)
class CacheLookup:
    """
    Result of ValueCache.get().

    Unpacks as ``value, stale = cache.get()``. Check ``available`` (or
    ``status``) to tell "never obtained" apart from "stale".
    """
    value: Any
    stale: bool
    status: CacheStatus
    age: Optional[float] = None

    def __iter__(self):
        return iter((self.value, self.stale))

    @property
    def available(self) -> bool:
        return self.status is not CacheStatus.UNAVAILABLE

    def unwrap(self, allow_stale: bool = True) -> Any:
        """
        Return the value or raise for callers that want hard failure.

        Raises:
            CacheUnavailableError: No value was ever obtained
            StaleValueError: Value is stale and allow_stale is False
        """
        if self.status is CacheStatus.UNAVAILABLE:
            raise CacheUnavailableError("No value has been obtained yet")
        if self.stale and not allow_stale:
            raise StaleValueError(f"Cached value is stale (age={self.age})")
        return self.value

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON responses."""
        return {
            "status": self.status.value,
            "stale": self.stale,
            "age": round(self.age, 3) if self.age is not None else None,
        }


UNAVAILABLE = CacheLookup(value=None, stale=False, status=CacheStatus.UNAVAILABLE)
