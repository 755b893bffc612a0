"""Resolve category references (id, idnumber or name path) to category ids.

Path resolution walks the path root-first, one segment per store query, so
that intermediate categories that already exist are reused and missing ones
are created (commit) or simulated (preview) with the right parent. Results
are cached per run under the full path, including failures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, List, Mapping, Optional, Tuple, Union

from uploadcourse.core.errors import CategoryCreationError, DenialReason, InvalidInputError
from uploadcourse.core.modes import ResolutionMode

from .cache import CachedCategory, PathCache, Unresolved, idnumber_key, path_key
from .events import NullResolutionReporter, ResolutionReporter
from .identifiers import (
    ROOT_CATEGORY,
    VIRTUAL_BASE,
    CategoryId,
    CategoryPath,
    CategoryRecord,
    RecordOrigin,
)
from .store import CapabilityProvider, CategoryStore
from .virtual import VirtualCategoryTable

LOGGER = logging.getLogger(__name__)

IDNUMBER_MAX_LENGTH = 100


@dataclass(frozen=True)
class Resolved:
    identifier: CategoryId
    records: Tuple[CategoryRecord, ...] = ()

    ok = True


@dataclass(frozen=True)
class PartiallyResolved:
    """The walk created categories before it failed; those stay in place."""

    records: Tuple[CategoryRecord, ...]
    reason: DenialReason
    detail: str = ""

    ok = False


@dataclass(frozen=True)
class Denied:
    reason: DenialReason
    detail: str = ""
    records: Tuple[CategoryRecord, ...] = ()

    ok = False


ResolutionResult = Union[Resolved, PartiallyResolved, Denied]


@dataclass(frozen=True)
class CategoryReference:
    """The category columns of one row, parsed."""

    category_id: Optional[int] = None
    idnumber: Optional[str] = None
    path: Optional[CategoryPath] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CategoryReference":
        raw_id = row.get("category")
        category_id: Optional[int] = None
        if raw_id not in (None, ""):
            try:
                category_id = int(str(raw_id).strip())
            except ValueError as exc:
                raise InvalidInputError(f"Category id must be an integer, got {raw_id!r}") from exc
            # 0 and below mean "no id given"; the idnumber or path still apply.
            if category_id <= 0:
                category_id = None
        idnumber = row.get("category_idnumber")
        idnumber = str(idnumber) if idnumber not in (None, "") else None
        raw_path = row.get("category_path")
        path = CategoryPath.parse(raw_path) if raw_path not in (None, "") else None
        return cls(category_id=category_id, idnumber=idnumber, path=path)

    @property
    def is_empty(self) -> bool:
        return self.category_id is None and self.idnumber is None and self.path is None


class ResolutionContext:
    """State shared by every resolution in one run.

    Owns the cache, the virtual category table and the virtual id counter.
    Call :meth:`reset` at the start of each run.
    """

    def __init__(self, cache: PathCache | None = None) -> None:
        self.cache = cache or PathCache()
        self.virtual_table = VirtualCategoryTable()
        self._virtual_counter = 0

    def next_virtual_id(self) -> CategoryId:
        self._virtual_counter += 1
        return CategoryId.virtual(self._virtual_counter)

    @property
    def virtual_ids_minted(self) -> int:
        return self._virtual_counter

    def reset(self) -> None:
        self._virtual_counter = 0
        self.virtual_table.clear()
        dropped = self.cache.discard_run_scoped()
        LOGGER.debug("Resolution context reset (%s run-scoped cache entries dropped)", dropped)


def validate_idnumber(idnumber: str) -> str:
    cleaned = idnumber.strip() if isinstance(idnumber, str) else ""
    if not cleaned:
        raise InvalidInputError("Category idnumber must not be blank")
    if len(cleaned) > IDNUMBER_MAX_LENGTH:
        raise InvalidInputError(f"Category idnumber longer than {IDNUMBER_MAX_LENGTH} characters")
    return cleaned


class CategoryPathResolver:
    def __init__(self, store: CategoryStore, reporter: ResolutionReporter | None = None) -> None:
        self.store = store
        self.reporter = reporter or NullResolutionReporter()

    # ------------------------------------------------------------------
    # Direct references

    def resolve_id(self, category_id: int, context: ResolutionContext) -> ResolutionResult:
        if not 0 < category_id < VIRTUAL_BASE:
            raise InvalidInputError(f"Category id out of range: {category_id}")
        record = self.store.find_by_id(category_id)
        if record is None:
            return Denied(DenialReason.NOT_FOUND, f"Could not resolve category by id {category_id}")
        return Resolved(CategoryId.persisted(category_id), (record,))

    def resolve_idnumber(self, idnumber: str, context: ResolutionContext) -> ResolutionResult:
        idnumber = validate_idnumber(idnumber)
        key = idnumber_key(idnumber)
        cached = context.cache.get(key)
        if cached is None:
            found = self.store.find_by_idnumber(idnumber)
            if found is None:
                cached = Unresolved(DenialReason.NOT_FOUND, f"Could not resolve category by idnumber '{idnumber}'")
            else:
                cached = CachedCategory(CategoryId.persisted(found))
            context.cache.set(key, cached)
        if isinstance(cached, Unresolved):
            return Denied(cached.reason, cached.detail)
        return Resolved(cached.identifier)

    # ------------------------------------------------------------------
    # Paths

    def resolve(
        self,
        path: CategoryPath,
        mode: ResolutionMode,
        may_create: bool,
        context: ResolutionContext,
        reporter: ResolutionReporter | None = None,
    ) -> ResolutionResult:
        reporter = reporter or self.reporter
        key = path_key(path)
        cached = context.cache.get(key)
        if isinstance(cached, Unresolved):
            return Denied(cached.reason, cached.detail)
        if isinstance(cached, CachedCategory):
            # A virtual hit is meaningless once the run commits.
            if mode is ResolutionMode.PREVIEW or not cached.identifier.is_virtual:
                return Resolved(cached.identifier)

        records: List[CategoryRecord] = []
        parent: Optional[CategoryId] = None
        created_any = False

        for prefix in path.prefixes():
            flat = prefix.flatten()
            name = prefix.leaf
            parent_value = parent.value if parent is not None else ROOT_CATEGORY

            # Nothing persisted can live under a simulated category.
            if parent is not None and parent.is_virtual:
                matches: List[CategoryRecord] = []
            else:
                matches = self.store.find_by_name_and_parent(name, parent_value)

            if len(matches) > 1:
                LOGGER.warning("Category name '%s' is ambiguous under parent %s (%s matches)", name, parent_value, len(matches))
                return self._abort(path, flat, name, parent_value, DenialReason.AMBIGUOUS, records, created_any, context, reporter)

            if matches:
                record = replace(matches[0], origin=RecordOrigin.PERSISTED, path=flat)
            elif not may_create:
                return self._abort(path, flat, name, parent_value, DenialReason.AUTO_CREATE_DENIED, records, created_any, context, reporter)
            elif mode is ResolutionMode.PREVIEW:
                record, minted = context.virtual_table.get_or_create(flat, name, parent_value, context.next_virtual_id)
                if minted:
                    LOGGER.debug("Simulated category '%s' as %s", flat, record.identifier)
                    reporter.category_will_be_created(record)
            else:
                try:
                    created = self.store.create(name, parent_value)
                except CategoryCreationError as exc:
                    LOGGER.error("Creating category '%s' failed: %s", flat, exc)
                    return self._abort(path, flat, name, parent_value, DenialReason.CREATION_FAILED, records, created_any, context, reporter)
                record = replace(created, path=flat)
                created_any = True
                LOGGER.info("Created category '%s' (id=%s, parent=%s)", flat, record.id, parent_value)
                reporter.category_created(record)

            records.append(record)
            parent = record.identifier

        assert parent is not None
        context.cache.set(key, CachedCategory(parent))
        return Resolved(parent, tuple(records))

    def _abort(
        self,
        path: CategoryPath,
        flat: str,
        name: str,
        parent_value: int,
        reason: DenialReason,
        records: List[CategoryRecord],
        created_any: bool,
        context: ResolutionContext,
        reporter: ResolutionReporter,
    ) -> ResolutionResult:
        denial = CategoryRecord(identifier=None, parent=parent_value, name=name, origin=RecordOrigin.DENIED, path=flat)
        reporter.category_resolution_denied(denial, reason)
        detail = f"Could not resolve category path '{path.flatten()}' at '{flat}': {reason.message}"
        context.cache.set(path_key(path), Unresolved(reason, detail))
        trail = tuple(records) + (denial,)
        if created_any:
            return PartiallyResolved(trail, reason, detail)
        return Denied(reason, detail, trail)

    # ------------------------------------------------------------------
    # Row-level entry point

    def resolve_reference(
        self,
        reference: CategoryReference,
        context: ResolutionContext,
        capabilities: CapabilityProvider,
        reporter: ResolutionReporter | None = None,
    ) -> ResolutionResult:
        """Resolve by id, then idnumber, then path; the first success wins."""

        if reference.is_empty:
            raise InvalidInputError("No category, category_idnumber or category_path supplied")

        failure: Optional[ResolutionResult] = None
        if reference.category_id is not None:
            result = self.resolve_id(reference.category_id, context)
            if result.ok:
                return result
            failure = result
        if reference.idnumber is not None:
            result = self.resolve_idnumber(reference.idnumber, context)
            if result.ok:
                return result
            failure = result
        if reference.path is not None:
            if failure is not None:
                LOGGER.info("Falling back to category path '%s' (%s)", reference.path, failure.detail)
            mode = ResolutionMode.PREVIEW if capabilities.is_preview_mode() else ResolutionMode.COMMIT
            return self.resolve(reference.path, mode, capabilities.can_auto_create_categories(), context, reporter)
        assert failure is not None
        return failure


__all__ = [
    "CategoryPathResolver",
    "CategoryReference",
    "Denied",
    "IDNUMBER_MAX_LENGTH",
    "PartiallyResolved",
    "ResolutionContext",
    "ResolutionResult",
    "Resolved",
    "validate_idnumber",
]
