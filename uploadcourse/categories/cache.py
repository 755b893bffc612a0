"""Run-scoped cache of category lookups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Union

from uploadcourse.core.errors import DenialReason

from .identifiers import CategoryId, CategoryPath


@dataclass(frozen=True, slots=True)
class CachedCategory:
    identifier: CategoryId


@dataclass(frozen=True, slots=True)
class Unresolved:
    """We already tried this key and failed; do not retry within the run."""

    reason: DenialReason
    detail: str = ""


CacheValue = Union[CachedCategory, Unresolved]


def path_key(path: CategoryPath) -> str:
    return f"path:{path.flatten()}"


def idnumber_key(idnumber: str) -> str:
    return f"idnumber:{idnumber}"


class PathCache:
    """Maps ``path:``/``idnumber:`` keys to a hit or an explicit miss.

    ``get`` returns ``None`` only when the key was never stored; a failed
    lookup is stored as :class:`Unresolved`.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, CacheValue] = {}

    def get(self, key: str) -> Optional[CacheValue]:
        return self._entries.get(key)

    def set(self, key: str, value: CacheValue) -> None:
        if not isinstance(value, (CachedCategory, Unresolved)):
            raise TypeError(f"Cache values must be CachedCategory or Unresolved, got {type(value).__name__}")
        self._entries[key] = value

    def discard_run_scoped(self) -> int:
        """Drop virtual hits and unresolved markers; return how many were dropped."""

        stale = [
            key
            for key, value in self._entries.items()
            if isinstance(value, Unresolved) or value.identifier.is_virtual
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["CacheValue", "CachedCategory", "PathCache", "Unresolved", "idnumber_key", "path_key"]
