"""Process upload rows, strictly in input order."""

from __future__ import annotations

import csv
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from catalog.adapters import CourseRecord, CourseStoreAdapter
from uploadcourse.categories import (
    CategoryPathResolver,
    CategoryReference,
    CategoryStore,
    CollectingResolutionReporter,
    ResolutionContext,
    ResolutionEventKind,
)
from uploadcourse.core.config import CourseDefaults, ImportOptions
from uploadcourse.core.errors import InvalidInputError
from uploadcourse.core.modes import ImportMode, UpdateMode
from uploadcourse.core.provenance import ProvenanceLogger
from uploadcourse.reporting.tracker import NullTracker, RowOutcome, RunTotals, Tracker

from .helpers import (
    ParsedRow,
    generate_shortname,
    increment_idnumber,
    increment_shortname,
    parse_bool,
    parse_row,
    resolve_enrolments,
    resolve_role_names,
)

LOGGER = logging.getLogger(__name__)

COURSE_FIELDS = ("shortname", "fullname", "idnumber", "category", "summary", "format", "visible")


class RowError(Exception):
    """A row-scoped failure; the run moves on to the next row."""


class CourseProcessor:
    """Create, update or delete one course per row.

    Categories are resolved through a shared :class:`ResolutionContext`, so
    rows that name the same category path are resolved once per run.
    """

    def __init__(
        self,
        *,
        categories: CategoryStore,
        courses: CourseStoreAdapter,
        options: ImportOptions,
        defaults: CourseDefaults | None = None,
        tracker: Tracker | None = None,
        provenance: ProvenanceLogger | None = None,
        context: ResolutionContext | None = None,
    ) -> None:
        self.courses = courses
        self.options = options
        self.defaults = defaults or CourseDefaults()
        self.tracker = tracker or NullTracker()
        self.provenance = provenance or ProvenanceLogger(None)
        self.context = context or ResolutionContext()
        self.resolver = CategoryPathResolver(categories)
        self._role_ids: Optional[Dict[str, int]] = None

    @property
    def role_ids(self) -> Dict[str, int]:
        if self._role_ids is None:
            self._role_ids = self.courses.role_ids()
        return self._role_ids

    def execute(self, rows: Iterable[Mapping[str, Any]], *, first_line: int = 2) -> RunTotals:
        """Process every row and report it; ``first_line`` is the first data line."""

        self.context.reset()
        totals = RunTotals()
        self.tracker.start()
        for line, row in enumerate(rows, start=first_line):
            collector = CollectingResolutionReporter()
            outcome = self.process_row(line, row, collector)
            totals.record(outcome)
            totals.categories_created += len(collector.of_kind(ResolutionEventKind.CREATED))
            totals.categories_created += len(collector.of_kind(ResolutionEventKind.WILL_BE_CREATED))
            for event in collector.events:
                self.provenance.record("category", event.message, line=line, kind=event.kind.value, **event.record.to_dict())
            self.provenance.record(
                "row",
                "ok" if outcome.success else "error",
                line=line,
                action=outcome.action,
                shortname=outcome.shortname,
                status=outcome.status,
            )
            self.tracker.output(outcome)
        self.tracker.results(totals)
        self.tracker.finish()
        LOGGER.info(
            "Upload finished: %s rows, %s created, %s updated, %s deleted, %s errors, %s categories",
            totals.total,
            totals.created,
            totals.updated,
            totals.deleted,
            totals.errors,
            totals.categories_created,
        )
        return totals

    def process_row(
        self,
        line: int,
        row: Mapping[str, Any],
        collector: CollectingResolutionReporter | None = None,
    ) -> RowOutcome:
        collector = collector or CollectingResolutionReporter()
        parsed = parse_row(row)
        outcome = RowOutcome(
            line=line,
            success=False,
            shortname=parsed.get("shortname", ""),
            fullname=parsed.get("fullname", ""),
            category_path=parsed.get("category_path", ""),
            idnumber=parsed.get("idnumber", ""),
        )
        try:
            self._process(parsed, outcome, collector)
        except (RowError, InvalidInputError) as exc:
            outcome.status.append(str(exc))
            outcome.success = False
            LOGGER.debug("Line %s failed: %s", line, exc)
        else:
            outcome.success = True
        return outcome

    # ------------------------------------------------------------------

    def _process(self, parsed: ParsedRow, outcome: RowOutcome, collector: CollectingResolutionReporter) -> None:
        preview = self.options.preview
        shortname = parsed.get("shortname") or generate_shortname(parsed.fields, self.options.shortname_template)
        if not shortname:
            raise RowError("Missing shortname and no shortname template could generate one")
        outcome.shortname = shortname

        existing = self.courses.find_by_shortname(shortname)

        if parse_bool(parsed.get("delete", "0")):
            self._delete(existing, outcome, preview)
            return

        if existing is not None:
            if self.options.mode is ImportMode.CREATE_ALL:
                shortname = increment_shortname(shortname, self.courses.shortname_exists)
                outcome.status.append(f"Course shortname incremented: {outcome.shortname} -> {shortname}")
                outcome.shortname = shortname
                existing = None
            elif not self.options.mode.can_update:
                raise RowError(f"Course '{shortname}' exists and the upload mode does not allow updates")

        if existing is None:
            if not self.options.mode.can_create:
                raise RowError(f"Course '{shortname}' does not exist and creating courses is not allowed")
            self._check_extras(parsed, outcome)
            data = self._creation_data(parsed, shortname, outcome, collector)
            if preview:
                outcome.status.append("Course will be created")
            else:
                created = self.courses.create(data)
                outcome.id = created.id
                self._write_extras(created.id, parsed)
                outcome.status.append("Course created")
            outcome.action = "created"
            return

        if self.options.update_mode is UpdateMode.NOTHING:
            raise RowError("Update mode is set to 'nothing'; existing course left unchanged")
        outcome.id = existing.id
        self._check_extras(parsed, outcome)
        data = self._update_data(parsed, existing, outcome, collector)
        if preview:
            outcome.status.append("Course will be updated")
        else:
            self.courses.update(existing.id, data)
            self._write_extras(existing.id, parsed)
            outcome.status.append("Course updated")
        outcome.action = "updated"

    def _delete(self, existing: CourseRecord | None, outcome: RowOutcome, preview: bool) -> None:
        if not self.options.allow_deletes:
            raise RowError("Course deletion is not allowed")
        if existing is None:
            raise RowError(f"Cannot delete course '{outcome.shortname}': it does not exist")
        outcome.id = existing.id
        if preview:
            outcome.status.append("Course will be deleted")
        else:
            self.courses.delete(existing.id)
            outcome.status.append("Course deleted")
        outcome.action = "deleted"

    def _creation_data(
        self,
        parsed: ParsedRow,
        shortname: str,
        outcome: RowOutcome,
        collector: CollectingResolutionReporter,
    ) -> Dict[str, Any]:
        data: Dict[str, Any] = {key: value for key, value in self.defaults.as_row_values().items() if key in COURSE_FIELDS}
        data.update({key: value for key, value in parsed.fields.items() if key in COURSE_FIELDS})
        data["shortname"] = shortname
        if not data.get("fullname"):
            raise RowError("Missing fullname")
        if "visible" in data:
            data["visible"] = parse_bool(data["visible"])
        self._check_idnumber(data, outcome, exclude_id=None)

        reference = CategoryReference.from_row(parsed.fields)
        if reference.is_empty:
            if self.defaults.category is None:
                raise RowError("Missing category and no default category is configured")
            reference = CategoryReference(category_id=self.defaults.category)
        data["category"] = self._resolve_category(reference, outcome, collector)
        return data

    def _update_data(
        self,
        parsed: ParsedRow,
        existing: CourseRecord,
        outcome: RowOutcome,
        collector: CollectingResolutionReporter,
    ) -> Dict[str, Any]:
        row_values = {key: value for key, value in parsed.fields.items() if key in COURSE_FIELDS and key != "shortname"}
        defaults = {key: value for key, value in self.defaults.as_row_values().items() if key in COURSE_FIELDS}
        mode = self.options.update_mode
        current = existing.to_dict()

        if mode is UpdateMode.DATA_ONLY:
            data = dict(row_values)
        elif mode is UpdateMode.DATA_OR_DEFAULTS:
            data = {**defaults, **row_values}
        else:
            data = {
                key: value
                for key, value in {**defaults, **row_values}.items()
                if current.get(key) in (None, "")
            }
        data.pop("category", None)
        if "visible" in data:
            data["visible"] = parse_bool(data["visible"])

        rename = parsed.get("rename")
        if rename:
            if not self.options.allow_renames:
                raise RowError("Course renaming is not allowed")
            if self.courses.shortname_exists(rename):
                raise RowError(f"Cannot rename course to '{rename}': shortname already in use")
            data["shortname"] = rename
            outcome.status.append(f"Course renamed: {existing.shortname} -> {rename}")
            outcome.shortname = rename

        if "idnumber" in data:
            self._check_idnumber(data, outcome, exclude_id=existing.id)

        reference = CategoryReference.from_row(parsed.fields)
        if not reference.is_empty:
            data["category"] = self._resolve_category(reference, outcome, collector)
        return data

    def _check_idnumber(self, data: Dict[str, Any], outcome: RowOutcome, *, exclude_id: int | None) -> None:
        idnumber = data.get("idnumber")
        if not idnumber:
            return

        def taken(value: str) -> bool:
            return self.courses.idnumber_exists(value, exclude_id=exclude_id)

        if not taken(idnumber):
            return
        if self.options.mode is not ImportMode.CREATE_ALL:
            raise RowError(f"Course idnumber '{idnumber}' is already in use")
        incremented = increment_idnumber(idnumber, taken)
        outcome.status.append(f"Course idnumber incremented: {idnumber} -> {incremented}")
        data["idnumber"] = incremented
        outcome.idnumber = incremented

    def _resolve_category(
        self,
        reference: CategoryReference,
        outcome: RowOutcome,
        collector: CollectingResolutionReporter,
    ) -> int:
        result = self.resolver.resolve_reference(reference, self.context, self.options, reporter=collector)
        outcome.status.extend(collector.messages)
        if not result.ok:
            if not any(event.kind is ResolutionEventKind.DENIED for event in collector.events):
                outcome.status.append(result.detail)
            raise RowError(f"Could not resolve category ({result.reason.message})")
        return result.identifier.value

    def _check_extras(self, parsed: ParsedRow, outcome: RowOutcome) -> None:
        _, invalid = resolve_role_names(parsed.role_names, self.role_ids)
        if invalid:
            raise RowError(f"Invalid roles: {', '.join(sorted(invalid))}")
        _, warnings = resolve_enrolments(parsed.enrolments, self.options.enrolment_methods)
        outcome.status.extend(warnings)

    def _write_extras(self, course_id: int, parsed: ParsedRow) -> None:
        enrolments, _ = resolve_enrolments(parsed.enrolments, self.options.enrolment_methods)
        if enrolments:
            self.courses.set_enrolments(course_id, enrolments)
        role_names, _ = resolve_role_names(parsed.role_names, self.role_ids)
        if role_names:
            self.courses.set_role_names(course_id, role_names)


def read_rows(lines: Iterable[str]) -> List[Dict[str, str]]:
    """Parse CSV text lines into dictionaries keyed by the header row."""

    reader = csv.DictReader(lines)
    return [dict(row) for row in reader]


__all__ = ["CourseProcessor", "RowError", "read_rows"]
