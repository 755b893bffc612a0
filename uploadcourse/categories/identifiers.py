"""Category identifiers, paths and per-segment records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Sequence

from uploadcourse.core.errors import InvalidInputError

VIRTUAL_BASE = 9_000_000_000
ROOT_CATEGORY = 0
PATH_SEPARATOR = " / "


class IdentifierKind(str, Enum):
    PERSISTED = "persisted"
    VIRTUAL = "virtual"


@dataclass(frozen=True, slots=True)
class CategoryId:
    """Either a stored category id or a run-scoped virtual one.

    Virtual ids live at or above ``VIRTUAL_BASE`` so they can never collide
    with persisted ids, and they are never handed to the store.
    """

    value: int
    kind: IdentifierKind = IdentifierKind.PERSISTED

    def __post_init__(self) -> None:
        if self.kind is IdentifierKind.PERSISTED and not 0 < self.value < VIRTUAL_BASE:
            raise ValueError(f"Persisted category ids must be positive, got {self.value}")
        if self.kind is IdentifierKind.VIRTUAL and self.value <= VIRTUAL_BASE:
            raise ValueError(f"Virtual category ids must exceed {VIRTUAL_BASE}, got {self.value}")

    @classmethod
    def persisted(cls, value: int) -> "CategoryId":
        return cls(int(value), IdentifierKind.PERSISTED)

    @classmethod
    def virtual(cls, counter: int) -> "CategoryId":
        if counter < 1:
            raise ValueError("Virtual id counters start at 1")
        return cls(VIRTUAL_BASE + counter, IdentifierKind.VIRTUAL)

    @property
    def is_virtual(self) -> bool:
        return self.kind is IdentifierKind.VIRTUAL

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, slots=True)
class CategoryPath:
    """Ordered category names from root to leaf."""

    segments: tuple[str, ...]

    def __post_init__(self) -> None:
        cleaned = tuple(segment.strip() if isinstance(segment, str) else segment for segment in self.segments)
        if not cleaned:
            raise InvalidInputError("Category path must contain at least one segment")
        for segment in cleaned:
            if not isinstance(segment, str) or not segment:
                raise InvalidInputError(f"Category path contains an empty segment: {list(self.segments)!r}")
        object.__setattr__(self, "segments", cleaned)

    @classmethod
    def parse(cls, value: str | Sequence[str]) -> "CategoryPath":
        """Build a path from ``"A / B / C"`` text or a sequence of names."""

        if isinstance(value, str):
            return cls(tuple(value.split("/")))
        return cls(tuple(value))

    def flatten(self) -> str:
        return PATH_SEPARATOR.join(self.segments)

    def prefixes(self) -> Iterator["CategoryPath"]:
        for depth in range(1, len(self.segments) + 1):
            yield CategoryPath(self.segments[:depth])

    @property
    def leaf(self) -> str:
        return self.segments[-1]

    def __len__(self) -> int:
        return len(self.segments)

    def __str__(self) -> str:
        return self.flatten()


class RecordOrigin(str, Enum):
    PERSISTED = "persisted"
    VIRTUAL = "virtual"
    DENIED = "denied"


@dataclass(frozen=True, slots=True)
class CategoryRecord:
    """One resolved (or refused) path segment."""

    identifier: Optional[CategoryId]
    parent: int
    name: str
    origin: RecordOrigin
    path: str

    @property
    def id(self) -> Optional[int]:
        return None if self.identifier is None else self.identifier.value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "parent": self.parent,
            "name": self.name,
            "origin": self.origin.value,
            "path": self.path,
        }


__all__ = [
    "CategoryId",
    "CategoryPath",
    "CategoryRecord",
    "IdentifierKind",
    "PATH_SEPARATOR",
    "ROOT_CATEGORY",
    "RecordOrigin",
    "VIRTUAL_BASE",
]
