"""Categories simulated during a preview run."""

from __future__ import annotations

from typing import Callable, Dict, Iterator, Optional, Tuple

from .identifiers import CategoryId, CategoryRecord, RecordOrigin


class VirtualCategoryTable:
    """Flattened partial path -> virtual record, for the lifetime of one run."""

    def __init__(self) -> None:
        self._records: Dict[str, CategoryRecord] = {}

    def get(self, path: str) -> Optional[CategoryRecord]:
        return self._records.get(path)

    def get_or_create(
        self,
        path: str,
        name: str,
        parent: int,
        mint: Callable[[], CategoryId],
    ) -> Tuple[CategoryRecord, bool]:
        """Return the record for ``path`` and whether it was minted by this call."""

        existing = self._records.get(path)
        if existing is not None:
            return existing, False
        identifier = mint()
        if not identifier.is_virtual:
            raise ValueError(f"Virtual table only accepts virtual ids, got {identifier.value}")
        record = CategoryRecord(
            identifier=identifier,
            parent=parent,
            name=name,
            origin=RecordOrigin.VIRTUAL,
            path=path,
        )
        self._records[path] = record
        return record, True

    def clear(self) -> None:
        self._records.clear()

    def __contains__(self, path: object) -> bool:
        return path in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CategoryRecord]:
        return iter(list(self._records.values()))
