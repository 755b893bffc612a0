import pytest

from uploadcourse.categories.cache import CachedCategory, PathCache, Unresolved, idnumber_key, path_key
from uploadcourse.categories.events import CollectingResolutionReporter, ResolutionEventKind
from uploadcourse.categories.identifiers import (
    VIRTUAL_BASE,
    CategoryId,
    CategoryPath,
    CategoryRecord,
    RecordOrigin,
)
from uploadcourse.categories.virtual import VirtualCategoryTable
from uploadcourse.core.errors import DenialReason, InvalidInputError


def test_category_path_parse_trims_and_flattens() -> None:
    path = CategoryPath.parse("  Science /Physics  / Optics ")

    assert path.segments == ("Science", "Physics", "Optics")
    assert path.flatten() == "Science / Physics / Optics"
    assert path.leaf == "Optics"
    assert len(path) == 3
    assert [prefix.flatten() for prefix in path.prefixes()] == [
        "Science",
        "Science / Physics",
        "Science / Physics / Optics",
    ]


def test_category_path_is_case_sensitive() -> None:
    assert CategoryPath.parse("science") != CategoryPath.parse("Science")


@pytest.mark.parametrize("value", ["", "   ", "Science//Physics", "Science / ", []])
def test_category_path_rejects_empty_segments(value) -> None:
    with pytest.raises(InvalidInputError):
        CategoryPath.parse(value)


def test_category_ids_live_in_disjoint_ranges() -> None:
    assert CategoryId.virtual(1).value == VIRTUAL_BASE + 1
    assert CategoryId.virtual(1).is_virtual
    assert not CategoryId.persisted(5).is_virtual
    assert int(CategoryId.persisted(5)) == 5
    assert CategoryId.persisted(5) != CategoryId.virtual(5)

    with pytest.raises(ValueError):
        CategoryId.persisted(0)
    with pytest.raises(ValueError):
        CategoryId.persisted(VIRTUAL_BASE + 1)
    with pytest.raises(ValueError):
        CategoryId.virtual(0)


def test_path_cache_distinguishes_absence_from_failure() -> None:
    cache = PathCache()
    key = path_key(CategoryPath.parse("Science"))

    assert key == "path:Science"
    assert idnumber_key("SCI") == "idnumber:SCI"
    assert cache.get(key) is None

    cache.set(key, Unresolved(DenialReason.NOT_FOUND))
    assert isinstance(cache.get(key), Unresolved)
    assert key in cache

    with pytest.raises(TypeError):
        cache.set(key, 0)


def test_path_cache_discard_run_scoped_keeps_persisted_hits() -> None:
    cache = PathCache()
    cache.set("path:A", CachedCategory(CategoryId.persisted(1)))
    cache.set("path:B", CachedCategory(CategoryId.virtual(1)))
    cache.set("idnumber:X", Unresolved(DenialReason.NOT_FOUND))

    assert cache.discard_run_scoped() == 2
    assert len(cache) == 1
    assert "path:A" in cache


def test_virtual_table_is_idempotent_per_path() -> None:
    table = VirtualCategoryTable()
    minted: list[int] = []

    def mint() -> CategoryId:
        minted.append(1)
        return CategoryId.virtual(len(minted))

    first, created = table.get_or_create("Science", "Science", 0, mint)
    again, created_again = table.get_or_create("Science", "Science", 0, mint)

    assert created and not created_again
    assert first is again
    assert first.origin is RecordOrigin.VIRTUAL
    assert len(minted) == 1
    assert "Science" in table
    table.clear()
    assert len(table) == 0


def test_virtual_table_refuses_persisted_ids() -> None:
    table = VirtualCategoryTable()

    with pytest.raises(ValueError):
        table.get_or_create("Science", "Science", 0, lambda: CategoryId.persisted(1))


def test_collecting_reporter_messages() -> None:
    reporter = CollectingResolutionReporter()
    record = CategoryRecord(
        identifier=None,
        parent=0,
        name="Science",
        origin=RecordOrigin.DENIED,
        path="Science",
    )

    reporter.category_resolution_denied(record, DenialReason.AMBIGUOUS)

    assert reporter.of_kind(ResolutionEventKind.DENIED)[0].record is record
    assert reporter.messages == ["Could not resolve category 'Science': ambiguous category name under parent"]
    assert record.to_dict() == {"id": None, "parent": 0, "name": "Science", "origin": "denied", "path": "Science"}
