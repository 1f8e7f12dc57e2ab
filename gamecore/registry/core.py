"""
Registry state and apply() result types.
"""
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union


class _Delete:
    """Sentinel value: remove the key when the batch commits."""

    def __repr__(self) -> str:
        return "DELETE"


DELETE = _Delete()


class RegistryCommitError(RuntimeError):
    """
    Commit phase failed after validation passed.

    Indicates a broken validate/commit split; the committed state is left
    exactly as it was before apply().
    """


class RegistryState(Mapping):
    """
    One committed version of a registry.

    Never mutated after construction: a commit builds a new RegistryState
    and swaps it in, so holding a reference gives a consistent view.
    """

    __slots__ = ("_data", "version")

    def __init__(self, data: Optional[Dict[str, Any]] = None, version: int = 0):
        self._data: Dict[str, Any] = dict(data or {})
        self.version = version

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def to_dict(self) -> Dict[str, Any]:
        """Shallow copy of the mapping."""
        return dict(self._data)

    def __repr__(self) -> str:
        return f"RegistryState(version={self.version}, keys={len(self._data)})"


@dataclass(frozen=True)
class ApplySuccess:
    """Batch committed; ``applied_keys`` in first-occurrence order."""
    applied_keys: List[str]
    version: int = field(default=0, compare=False)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ApplyFailure:
    """Batch rejected; nothing was written."""
    failed_keys: List[str]
    reasons: Dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def ok(self) -> bool:
        return False


ApplyResult = Union[ApplySuccess, ApplyFailure]
