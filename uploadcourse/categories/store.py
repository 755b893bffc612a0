"""Interfaces the resolver needs from its collaborators."""

from __future__ import annotations

from typing import List, Optional, Protocol

from .identifiers import CategoryRecord


class CategoryStore(Protocol):
    """Persisted categories.

    ``create`` raises :class:`~uploadcourse.core.errors.CategoryCreationError`
    when the store rejects the row and
    :class:`~uploadcourse.core.errors.StoreUnavailableError` when the store
    cannot be reached at all.
    """

    def find_by_name_and_parent(self, name: str, parent_id: int) -> List[CategoryRecord]: ...

    def find_by_idnumber(self, idnumber: str) -> Optional[int]: ...

    def find_by_id(self, category_id: int) -> Optional[CategoryRecord]: ...

    def create(self, name: str, parent_id: int) -> CategoryRecord: ...


class CapabilityProvider(Protocol):
    def can_auto_create_categories(self) -> bool: ...

    def is_preview_mode(self) -> bool: ...


__all__ = ["CapabilityProvider", "CategoryStore"]
