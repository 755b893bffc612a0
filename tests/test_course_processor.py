import io
import json
from pathlib import Path

import pytest

from catalog import CatalogStore, CategoryStoreAdapter, CourseStoreAdapter
from uploadcourse.categories import ResolutionContext
from uploadcourse.core.config import CourseDefaults, ImportOptions
from uploadcourse.core.modes import ImportMode, UpdateMode
from uploadcourse.core.provenance import ProvenanceLogger
from uploadcourse.courses import CourseProcessor, read_rows
from uploadcourse.reporting.tracker import PlainTracker


@pytest.fixture()
def catalog(tmp_path: Path) -> tuple[CategoryStoreAdapter, CourseStoreAdapter]:
    store = CatalogStore(tmp_path / "catalog.sqlite")
    return CategoryStoreAdapter(store), CourseStoreAdapter(store)


def _processor(catalog, **options) -> CourseProcessor:
    categories, courses = catalog
    defaults = options.pop("defaults", None)
    return CourseProcessor(
        categories=categories,
        courses=courses,
        options=ImportOptions(**options),
        defaults=defaults,
    )


def _row(shortname: str = "PHYS101", **fields: str) -> dict[str, str]:
    row = {"shortname": shortname, "fullname": "Introductory Physics", "category_path": "Science / Physics"}
    row.update(fields)
    return row


def test_rows_sharing_a_path_create_categories_once(catalog) -> None:
    categories, courses = catalog
    processor = _processor(catalog, allow_category_autocreate=True)

    totals = processor.execute([_row("PHYS101"), _row("PHYS201", fullname="Electromagnetism")])

    assert (totals.total, totals.created, totals.errors) == (2, 2, 0)
    assert totals.categories_created == 2
    paths = [entry["path"] for entry in categories.list_categories()]
    assert paths == ["Science", "Science / Physics"]
    physics = categories.list_categories(topic="physics")[0]["id"]
    assert {course.category for course in courses.list_courses()} == {physics}


def test_preview_reports_without_writing(catalog) -> None:
    categories, courses = catalog
    processor = _processor(catalog, allow_category_autocreate=True, preview=True)

    outcome = processor.process_row(2, _row())
    totals = processor.execute([_row("PHYS101"), _row("PHYS201")])

    assert outcome.success
    assert outcome.status == [
        "Category does not exist, will be created: Science",
        "Category does not exist, will be created: Science / Physics",
        "Course will be created",
    ]
    assert totals.created == 2
    assert totals.categories_created == 2
    assert categories.list_categories() == []
    assert courses.list_courses() == []


def test_denied_autocreate_fails_the_row_only(catalog) -> None:
    processor = _processor(catalog)

    outcome = processor.process_row(2, _row("PHYS101"))
    replayed = processor.process_row(3, _row("PHYS102"))
    totals = processor.execute([_row("PHYS101"), _row("MATH101", category_path="", category="")])

    assert not outcome.success
    assert outcome.status == [
        "Could not resolve category 'Science': auto-create not permitted",
        "Could not resolve category (auto-create not permitted)",
    ]
    assert replayed.status[0] == (
        "Could not resolve category path 'Science / Physics' at 'Science': auto-create not permitted"
    )
    assert totals.errors == 2
    assert totals.categories_created == 0


def test_default_category_is_used_when_row_names_none(catalog) -> None:
    categories, courses = catalog
    misc = categories.create("Miscellaneous", 0).id
    processor = _processor(catalog, defaults=CourseDefaults(category=misc, format="weeks"))

    outcome = processor.process_row(2, {"shortname": "GEN1", "fullname": "General"})

    assert outcome.success, outcome.status
    course = courses.find_by_shortname("GEN1")
    assert course.category == misc
    assert course.format == "weeks"


def test_create_new_rejects_existing_course(catalog) -> None:
    processor = _processor(catalog, allow_category_autocreate=True)
    processor.execute([_row()])

    outcome = processor.process_row(3, _row())

    assert not outcome.success
    assert "exists" in outcome.status[-1]


def test_create_all_increments_shortname_and_idnumber(catalog) -> None:
    _, courses = catalog
    processor = _processor(catalog, mode=ImportMode.CREATE_ALL, allow_category_autocreate=True)
    processor.execute([_row(idnumber="PHYS-1")])

    outcome = processor.process_row(3, _row(idnumber="PHYS-1"))

    assert outcome.success, outcome.status
    assert outcome.shortname == "PHYS102"
    assert outcome.idnumber == "PHYS-2"
    assert "Course shortname incremented: PHYS101 -> PHYS102" in outcome.status
    assert "Course idnumber incremented: PHYS-1 -> PHYS-2" in outcome.status
    assert [course.shortname for course in courses.list_courses()] == ["PHYS101", "PHYS102"]


def test_duplicate_idnumber_is_an_error_outside_create_all(catalog) -> None:
    processor = _processor(catalog, allow_category_autocreate=True)
    processor.execute([_row("PHYS101", idnumber="PHYS-1")])

    outcome = processor.process_row(3, _row("PHYS102", idnumber="PHYS-1"))

    assert not outcome.success
    assert outcome.status == ["Course idnumber 'PHYS-1' is already in use"]


def test_update_modes(catalog) -> None:
    _, courses = catalog
    _processor(catalog, allow_category_autocreate=True).execute([_row(summary="Old")])

    refused = _processor(catalog, mode=ImportMode.CREATE_OR_UPDATE).process_row(3, _row(fullname="Physics I"))
    updated = _processor(
        catalog,
        mode=ImportMode.CREATE_OR_UPDATE,
        update_mode=UpdateMode.DATA_ONLY,
    ).process_row(3, {"shortname": "PHYS101", "fullname": "Physics I"})

    assert not refused.success
    assert updated.success
    assert updated.action == "updated"
    course = courses.find_by_shortname("PHYS101")
    assert course.fullname == "Physics I"
    assert course.summary == "Old"


def test_update_only_does_not_create(catalog) -> None:
    processor = _processor(catalog, mode=ImportMode.UPDATE_ONLY, update_mode=UpdateMode.DATA_ONLY)

    outcome = processor.process_row(2, _row("NEW1"))

    assert not outcome.success
    assert "creating courses is not allowed" in outcome.status[0]


def test_rename_requires_permission(catalog) -> None:
    _, courses = catalog
    _processor(catalog, allow_category_autocreate=True).execute([_row()])
    options = {"mode": ImportMode.CREATE_OR_UPDATE, "update_mode": UpdateMode.DATA_ONLY}

    refused = _processor(catalog, **options).process_row(3, {"shortname": "PHYS101", "rename": "PHYS111"})
    renamed = _processor(catalog, allow_renames=True, **options).process_row(3, {"shortname": "PHYS101", "rename": "PHYS111"})

    assert refused.status == ["Course renaming is not allowed"]
    assert renamed.success
    assert courses.find_by_shortname("PHYS111") is not None


def test_delete_requires_permission(catalog) -> None:
    _, courses = catalog
    _processor(catalog, allow_category_autocreate=True).execute([_row()])

    refused = _processor(catalog).process_row(3, {"shortname": "PHYS101", "delete": "1"})
    preview = _processor(catalog, allow_deletes=True, preview=True).process_row(3, {"shortname": "PHYS101", "delete": "1"})
    assert courses.find_by_shortname("PHYS101") is not None
    deleted = _processor(catalog, allow_deletes=True).process_row(3, {"shortname": "PHYS101", "delete": "1"})

    assert refused.status == ["Course deletion is not allowed"]
    assert preview.status == ["Course will be deleted"]
    assert deleted.action == "deleted"
    assert courses.find_by_shortname("PHYS101") is None


def test_invalid_roles_fail_before_categories_are_created(catalog) -> None:
    categories, _ = catalog
    processor = _processor(catalog, allow_category_autocreate=True)

    outcome = processor.process_row(2, _row(role_wizard="Mage"))

    assert outcome.status == ["Invalid roles: wizard"]
    assert categories.list_categories() == []


def test_enrolments_and_role_names_are_stored(catalog) -> None:
    _, courses = catalog
    processor = _processor(catalog, allow_category_autocreate=True, enrolment_methods=["manual"])

    outcome = processor.process_row(
        2,
        _row(enrolment_1="manual", enrolment_1_role="student", enrolment_2="ldap", role_student="Learner"),
    )

    assert outcome.success
    assert "Unknown enrolment method 'ldap' (enrolment_2) ignored" in outcome.status
    assert courses.enrolments(outcome.id) == {"manual": {"role": "student"}}
    assert courses.role_names(outcome.id) == {courses.role_ids()["student"]: "Learner"}


def test_shortname_template_fills_missing_shortname(catalog) -> None:
    processor = _processor(catalog, allow_category_autocreate=True, shortname_template="%+4f")

    outcome = processor.process_row(2, _row(""))

    assert outcome.success
    assert outcome.shortname == "INTR"


def test_missing_shortname_without_template(catalog) -> None:
    outcome = _processor(catalog).process_row(2, _row(""))

    assert not outcome.success
    assert outcome.status == ["Missing shortname and no shortname template could generate one"]


def test_malformed_category_path_is_a_row_error(catalog) -> None:
    outcome = _processor(catalog, allow_category_autocreate=True).process_row(2, _row(category_path="Science//Physics"))

    assert not outcome.success
    assert "empty segment" in outcome.status[0]


def test_execute_reports_and_records_provenance(catalog, tmp_path: Path) -> None:
    categories, courses = catalog
    stream = io.StringIO()
    provenance_path = tmp_path / "prov" / "events.jsonl"
    processor = CourseProcessor(
        categories=categories,
        courses=courses,
        options=ImportOptions(allow_category_autocreate=True),
        tracker=PlainTracker(stream),
        provenance=ProvenanceLogger(provenance_path),
        context=ResolutionContext(),
    )

    rows = read_rows(["shortname,fullname,category_path", "PHYS101,Physics,Science"])
    totals = processor.execute(rows)

    output = stream.getvalue().splitlines()
    assert output[0].startswith("line\tresult\tid\tshortname")
    assert output[1].startswith("2\tOK\t")
    assert "  Category created: Science" in output
    assert "Courses created: 1" in output
    events = [json.loads(line) for line in provenance_path.read_text(encoding="utf-8").splitlines()]
    assert [event["stage"] for event in events] == ["category", "row"]
    assert events[1]["payload"]["action"] == "created"
    assert totals.categories_created == 1
