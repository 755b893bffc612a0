"""SQLite-backed catalog of course categories and courses."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterable

from uploadcourse.core.errors import StoreUnavailableError


class CatalogStore:
    """SQLite catalog. ``read_only`` stores never touch the schema or the rows."""

    def __init__(self, db_path: Path, *, read_only: bool = False) -> None:
        self.db_path = db_path
        self.read_only = read_only
        if not read_only:
            self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        """Open a connection; writable stores create the parent directory first."""

        try:
            if self.read_only:
                con = sqlite3.connect(f"{self.db_path.resolve().as_uri()}?mode=ro", uri=True)
            else:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                con = sqlite3.connect(self.db_path)
        except (OSError, sqlite3.OperationalError) as exc:
            raise StoreUnavailableError(f"Catalog store unavailable at {self.db_path}: {exc}") from exc
        con.execute("PRAGMA foreign_keys = ON")
        return con

    def _ensure_schema(self) -> None:
        schema_sql = Path(__file__).with_name("schema.sql").read_text(encoding="utf-8")
        con = self._connect()
        try:
            con.executescript(schema_sql)
        finally:
            con.close()

    def execute(self, sql: str, params: tuple | None = None) -> int:
        """Execute a single SQL statement and return the last row id (if any)."""

        con = self._connect()
        try:
            with con:
                cur = con.execute(sql, params or tuple())
                return int(cur.lastrowid or 0)
        finally:
            con.close()

    def execute_many(self, sql: str, rows: Iterable[tuple]) -> None:
        buffered_rows = list(rows)
        if not buffered_rows:
            return
        con = self._connect()
        try:
            with con:
                con.executemany(sql, buffered_rows)
        finally:
            con.close()

    def query(self, sql: str, params: tuple | None = None) -> list[tuple]:
        con = self._connect()
        try:
            return con.execute(sql, params or tuple()).fetchall()
        finally:
            con.close()
