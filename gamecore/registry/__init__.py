"""
Atomic multi-key mutation of shared registries.
"""
from .core import (
    DELETE,
    ApplyFailure,
    ApplyResult,
    ApplySuccess,
    RegistryCommitError,
    RegistryState,
)
from .validators import (
    Validator,
    accept_all,
    all_of,
    key_prefix,
    known_keys_only,
    no_overwrite,
    positive_value,
    value_type,
)
from .bulk import BulkRegistry

__all__ = [
    "DELETE",
    "ApplyFailure",
    "ApplyResult",
    "ApplySuccess",
    "RegistryCommitError",
    "RegistryState",
    "Validator",
    "accept_all",
    "all_of",
    "key_prefix",
    "known_keys_only",
    "no_overwrite",
    "positive_value",
    "value_type",
    "BulkRegistry",
]
