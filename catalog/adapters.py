"""Adapter objects that encapsulate access to the catalog store."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from uploadcourse.categories.identifiers import (
    PATH_SEPARATOR,
    ROOT_CATEGORY,
    CategoryId,
    CategoryRecord,
    RecordOrigin,
)
from uploadcourse.core.errors import CategoryCreationError

from .storage import CatalogStore

COURSE_COLUMNS = ("id", "shortname", "fullname", "idnumber", "category", "summary", "format", "visible")
WRITABLE_COURSE_FIELDS = COURSE_COLUMNS[1:]


class CategoryStoreAdapter:
    """Category lookups and creation on top of :class:`CatalogStore`."""

    def __init__(self, store: CatalogStore) -> None:
        self.store = store

    @classmethod
    def open(cls, db_path: Path) -> "CategoryStoreAdapter":
        return cls(CatalogStore(db_path))

    def _record(self, row: tuple, path: str = "") -> CategoryRecord:
        return CategoryRecord(
            identifier=CategoryId.persisted(row[0]),
            parent=int(row[1]),
            name=row[2],
            origin=RecordOrigin.PERSISTED,
            path=path or row[2],
        )

    def find_by_name_and_parent(self, name: str, parent_id: int) -> List[CategoryRecord]:
        rows = self.store.query(
            "SELECT id, parent, name FROM course_categories WHERE name = ? AND parent = ? ORDER BY id",
            (name, parent_id),
        )
        return [self._record(row) for row in rows]

    def find_by_idnumber(self, idnumber: str) -> Optional[int]:
        rows = self.store.query("SELECT id FROM course_categories WHERE idnumber = ?", (idnumber,))
        return int(rows[0][0]) if rows else None

    def find_by_id(self, category_id: int) -> Optional[CategoryRecord]:
        rows = self.store.query("SELECT id, parent, name FROM course_categories WHERE id = ?", (category_id,))
        return self._record(rows[0]) if rows else None

    def create(self, name: str, parent_id: int, *, idnumber: str | None = None) -> CategoryRecord:
        depth = 1
        if parent_id != ROOT_CATEGORY:
            parent_rows = self.store.query("SELECT depth FROM course_categories WHERE id = ?", (parent_id,))
            if not parent_rows:
                raise CategoryCreationError(f"Parent category {parent_id} does not exist")
            depth = int(parent_rows[0][0]) + 1
        try:
            new_id = self.store.execute(
                "INSERT INTO course_categories(name, parent, idnumber, depth) VALUES (?, ?, ?, ?)",
                (name, parent_id, idnumber, depth),
            )
        except sqlite3.IntegrityError as exc:
            raise CategoryCreationError(f"Cannot create category '{name}': {exc}") from exc
        return CategoryRecord(
            identifier=CategoryId.persisted(new_id),
            parent=parent_id,
            name=name,
            origin=RecordOrigin.PERSISTED,
            path=name,
        )

    def list_categories(self, *, topic: str | None = None) -> list[dict[str, Any]]:
        """All categories with their flattened paths, sorted by path."""

        rows = self.store.query("SELECT id, parent, name, idnumber, depth FROM course_categories")
        nodes = {row[0]: row for row in rows}
        results: list[dict[str, Any]] = []
        for row in rows:
            entry = {
                "id": row[0],
                "parent": row[1],
                "name": row[2],
                "idnumber": row[3],
                "depth": row[4],
                "path": self._flatten(row[0], nodes),
            }
            if topic and topic.lower() not in entry["path"].lower():
                continue
            results.append(entry)
        return sorted(results, key=lambda item: (item["path"], item["id"]))

    @staticmethod
    def _flatten(category_id: int, nodes: Mapping[int, tuple]) -> str:
        parts: list[str] = []
        current = category_id
        seen: set[int] = set()
        while current and current not in seen:
            seen.add(current)
            node = nodes.get(current)
            if node is None:
                parts.insert(0, f"[{current}]")
                break
            parts.insert(0, node[2])
            current = node[1]
        return PATH_SEPARATOR.join(parts)


@dataclass
class CourseRecord:
    id: int
    shortname: str
    fullname: str
    idnumber: Optional[str]
    category: int
    summary: str = ""
    format: str = "topics"
    visible: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class CourseStoreAdapter:
    """Course rows plus their enrolment methods and role name overrides."""

    def __init__(self, store: CatalogStore) -> None:
        self.store = store

    def _course(self, row: tuple) -> CourseRecord:
        payload = dict(zip(COURSE_COLUMNS, row))
        payload["visible"] = bool(payload["visible"])
        payload["summary"] = payload["summary"] or ""
        return CourseRecord(**payload)

    def find_by_shortname(self, shortname: str) -> Optional[CourseRecord]:
        rows = self.store.query(
            f"SELECT {', '.join(COURSE_COLUMNS)} FROM courses WHERE shortname = ?",
            (shortname,),
        )
        return self._course(rows[0]) if rows else None

    def shortname_exists(self, shortname: str) -> bool:
        return bool(self.store.query("SELECT 1 FROM courses WHERE shortname = ?", (shortname,)))

    def idnumber_exists(self, idnumber: str, *, exclude_id: int | None = None) -> bool:
        sql = "SELECT 1 FROM courses WHERE idnumber = ?"
        params: tuple = (idnumber,)
        if exclude_id is not None:
            sql += " AND id != ?"
            params += (exclude_id,)
        return bool(self.store.query(sql, params))

    def list_courses(self, *, category: int | None = None) -> list[CourseRecord]:
        sql = f"SELECT {', '.join(COURSE_COLUMNS)} FROM courses"
        params: tuple = tuple()
        if category is not None:
            sql += " WHERE category = ?"
            params = (category,)
        sql += " ORDER BY shortname"
        return [self._course(row) for row in self.store.query(sql, params)]

    def create(self, fields: Mapping[str, Any]) -> CourseRecord:
        values = {key: fields[key] for key in WRITABLE_COURSE_FIELDS if key in fields}
        if "visible" in values:
            values["visible"] = int(bool(values["visible"]))
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        new_id = self.store.execute(
            f"INSERT INTO courses({columns}) VALUES ({placeholders})",
            tuple(values.values()),
        )
        created = self.find_by_shortname(values["shortname"])
        assert created is not None and created.id == new_id
        return created

    def update(self, course_id: int, fields: Mapping[str, Any]) -> None:
        values = {key: fields[key] for key in WRITABLE_COURSE_FIELDS if key in fields}
        if not values:
            return
        if "visible" in values:
            values["visible"] = int(bool(values["visible"]))
        assignments = ", ".join(f"{key} = ?" for key in values)
        self.store.execute(
            f"UPDATE courses SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            tuple(values.values()) + (course_id,),
        )

    def delete(self, course_id: int) -> None:
        self.store.execute("DELETE FROM courses WHERE id = ?", (course_id,))

    def role_ids(self) -> Dict[str, int]:
        return {row[1]: int(row[0]) for row in self.store.query("SELECT id, shortname FROM roles")}

    def set_role_names(self, course_id: int, names: Mapping[int, str]) -> None:
        self.store.execute_many(
            "INSERT OR REPLACE INTO course_role_names(course_id, role_id, name) VALUES (?, ?, ?)",
            [(course_id, role_id, name) for role_id, name in names.items()],
        )

    def role_names(self, course_id: int) -> Dict[int, str]:
        rows = self.store.query("SELECT role_id, name FROM course_role_names WHERE course_id = ?", (course_id,))
        return {int(row[0]): row[1] for row in rows}

    def set_enrolments(self, course_id: int, methods: Mapping[str, Mapping[str, Any]]) -> None:
        self.store.execute_many(
            "INSERT OR REPLACE INTO course_enrolments(course_id, method, options) VALUES (?, ?, ?)",
            [
                (course_id, method, json.dumps(dict(options), sort_keys=True, ensure_ascii=False))
                for method, options in methods.items()
            ],
        )

    def enrolments(self, course_id: int) -> Dict[str, Dict[str, Any]]:
        rows = self.store.query("SELECT method, options FROM course_enrolments WHERE course_id = ?", (course_id,))
        return {row[0]: json.loads(row[1] or "{}") for row in rows}


__all__ = ["CategoryStoreAdapter", "CourseRecord", "CourseStoreAdapter"]
