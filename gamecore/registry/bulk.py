"""
Validate-then-commit store for shared mutable tables.

apply() runs in two phases:
1. Validate every entry against the committed state. Any failure rejects
   the whole batch and nothing is written.
2. Build the next state from a copy, entries in input order (later
   duplicates win), then swap it in with a single assignment.

Readers never see a half-applied batch: they either hold the previous
RegistryState or the new one.

Note for callers migrating from loops that wrote entries one by one and
stopped at the first bad entry: a rejected batch now leaves every key,
including the valid ones, untouched.
"""
import threading
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .core import (
    DELETE,
    ApplyFailure,
    ApplyResult,
    ApplySuccess,
    RegistryCommitError,
    RegistryState,
)
from .validators import Validator, accept_all

logger = logging.getLogger("registry.bulk")

Listener = Callable[["BulkRegistry", List[str]], None]


class BulkRegistry:
    """
    Shared key -> value table with all-or-nothing batch writes.

    Usage:
        items = BulkRegistry("items", validate=positive_value)
        result = items.apply([("bread", 5), ("water", 3)])
        if not result.ok:
            print(result.failed_keys)
    """

    def __init__(
        self,
        name: str,
        initial: Optional[Dict[str, Any]] = None,
        *,
        validate: Optional[Validator] = None,
    ):
        """
        Args:
            name: Registry name used in logs
            initial: Starting contents (version 0)
            validate: Default validator when apply() gets none
        """
        self.name = name
        self._state = RegistryState(initial or {}, version=0)
        self._validate = validate or accept_all
        self._lock = threading.RLock()
        # Set while a batch is validated or committed under _lock
        self._applying = False
        self._listeners: List[Listener] = []

        self._stats = {
            "commits": 0,
            "rejected": 0,
            "keys_written": 0,
        }

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> RegistryState:
        """The current committed state (read-only, never changes)."""
        return self._state

    def get(self, key: str, default: Any = None) -> Any:
        return self._state.get(key, default)

    def keys(self) -> List[str]:
        return list(self._state)

    @property
    def version(self) -> int:
        return self._state.version

    def __contains__(self, key: object) -> bool:
        return key in self._state

    def __len__(self) -> int:
        return len(self._state)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def apply(
        self,
        batch: Iterable[Tuple[str, Any]],
        validate: Optional[Validator] = None,
    ) -> ApplyResult:
        """
        Apply a batch of (key, value) writes atomically.

        Args:
            batch: Ordered (key, value) pairs; value DELETE removes the key
            validate: Per-call validator (registry default if None)

        Returns:
            ApplySuccess with the distinct keys written, or ApplyFailure
            listing every rejected key

        Raises:
            TypeError: An entry is not a (key, value) pair
            RegistryCommitError: The commit phase failed (state untouched)
            RuntimeError: Called from a validator of this same registry
        """
        entries = self._normalize(batch)
        if not entries:
            return ApplySuccess(applied_keys=[], version=self._state.version)

        validator = validate or self._validate

        with self._lock:
            if self._applying:
                # Only the thread holding _lock can get here: a validator
                # called back into apply()
                raise RuntimeError(
                    f"Nested apply() on registry {self.name!r} from inside a batch"
                )
            self._applying = True
            try:
                result = self._apply_locked(entries, validator)
            finally:
                self._applying = False
            if not result.ok:
                return result

        logger.debug(f"Committed {len(result.applied_keys)} keys to {self.name} (v{result.version})")
        self._notify(result.applied_keys)
        return result

    def _apply_locked(self, entries: List[Tuple[Any, Any]], validator: Validator) -> ApplyResult:
        current = self._state
        failed, reasons = self._validate_batch(entries, validator, current)
        if failed:
            self._stats["rejected"] += 1
            logger.info(
                f"Rejected batch for {self.name}: "
                f"{len(failed)}/{len(entries)} entries failed {failed}"
            )
            return ApplyFailure(failed_keys=failed, reasons=reasons)

        next_state, applied = self._commit(entries, current)
        self._state = next_state
        self._stats["commits"] += 1
        self._stats["keys_written"] += len(applied)
        return ApplySuccess(applied_keys=applied, version=next_state.version)

    def set(self, key: str, value: Any, validate: Optional[Validator] = None) -> ApplyResult:
        """Single-key apply()."""
        return self.apply([(key, value)], validate=validate)

    def remove(self, keys: Sequence[str], validate: Optional[Validator] = None) -> ApplyResult:
        """Delete several keys atomically."""
        return self.apply([(k, DELETE) for k in keys], validate=validate)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call ``listener(registry, applied_keys)`` after every non-empty commit.

        Returns:
            A function that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize(batch: Iterable[Tuple[str, Any]]) -> List[Tuple[Any, Any]]:
        entries = []
        for entry in batch:
            try:
                key, value = entry
            except (TypeError, ValueError):
                raise TypeError(f"Batch entries must be (key, value) pairs, got {entry!r}")
            entries.append((key, value))
        return entries

    def _validate_batch(
        self,
        entries: List[Tuple[Any, Any]],
        validator: Validator,
        current: RegistryState,
    ) -> Tuple[List[str], Dict[str, str]]:
        failed: List[str] = []
        reasons: Dict[str, str] = {}

        for key, value in entries:
            if not isinstance(key, str):
                # Typed so that 1 and "1" never share a label
                label = f"<{type(key).__name__}> {key!r}"
                reason = "key must be a string"
            else:
                label = key
                reason = None
                try:
                    if not validator(key, value, current):
                        reason = "rejected by validator"
                except Exception as e:
                    logger.warning(f"Validator raised on {self.name}[{key!r}]: {e}")
                    reason = f"validator raised {type(e).__name__}: {e}"

            if reason is not None and label not in reasons:
                failed.append(label)
                reasons[label] = reason

        return failed, reasons

    def _commit(
        self,
        entries: List[Tuple[Any, Any]],
        current: RegistryState,
    ) -> Tuple[RegistryState, List[str]]:
        try:
            data = current.to_dict()
            applied: List[str] = []
            seen = set()
            for key, value in entries:
                if value is DELETE:
                    data.pop(key, None)
                else:
                    data[key] = value
                if key not in seen:
                    seen.add(key)
                    applied.append(key)
            return RegistryState(data, version=current.version + 1), applied
        except Exception as e:
            logger.critical(
                f"Commit failed for {self.name} after validation passed: {e}",
                exc_info=True,
            )
            raise RegistryCommitError(
                f"Commit phase failed for registry {self.name!r}"
            ) from e

    def _notify(self, applied: List[str]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(self, applied)
            except Exception as e:
                logger.warning(f"Listener failed for {self.name}: {e}", exc_info=True)

    def get_stats(self) -> Dict[str, Any]:
        """Get registry statistics."""
        return {
            "name": self.name,
            "version": self._state.version,
            "entries": len(self._state),
            **self._stats,
        }
