"""
Reusable batch validators.

A validator is ``(key, value, current_state) -> bool``. ``current_state``
is the committed RegistryState, not the batch being validated.
"""
from collections.abc import Mapping
from typing import Any, Callable

from .core import DELETE

Validator = Callable[[str, Any, Mapping], bool]


def accept_all(key: str, value: Any, current: Mapping) -> bool:
    return True


def positive_value(key: str, value: Any, current: Mapping) -> bool:
    """Numbers strictly greater than zero (deletes pass)."""
    if value is DELETE:
        return True
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value > 0


def known_keys_only(key: str, value: Any, current: Mapping) -> bool:
    """Only keys already present may be written or deleted."""
    return key in current


def no_overwrite(key: str, value: Any, current: Mapping) -> bool:
    """Only new keys may be written."""
    return key not in current


def key_prefix(prefix: str) -> Validator:
    def _validate(key: str, value: Any, current: Mapping) -> bool:
        return key.startswith(prefix)

    return _validate


def value_type(*types: type) -> Validator:
    """Values must be instances of one of ``types`` (deletes pass)."""

    def _validate(key: str, value: Any, current: Mapping) -> bool:
        return value is DELETE or isinstance(value, types)

    return _validate


def all_of(*validators: Validator) -> Validator:
    """Entry passes only if every validator passes (short-circuits)."""

    def _validate(key: str, value: Any, current: Mapping) -> bool:
        return all(v(key, value, current) for v in validators)

    return _validate
