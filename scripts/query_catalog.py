"""CLI helpers for inspecting the course catalog."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from catalog.adapters import CategoryStoreAdapter, CourseStoreAdapter
from catalog.storage import CatalogStore
from uploadcourse.categories import (
    CategoryPath,
    CategoryPathResolver,
    CollectingResolutionReporter,
    ResolutionContext,
)
from uploadcourse.core.errors import InvalidInputError
from uploadcourse.core.modes import ResolutionMode

ENV_REPO_ROOT = "COURSE_UPLOAD_REPO_ROOT"
STORE_ENV_VAR = "COURSE_UPLOAD_STORE"


def _resolve_repo_root() -> Path:
    override = os.environ.get(ENV_REPO_ROOT)
    if override:
        return Path(override).expanduser().resolve()
    return Path(__file__).resolve().parents[1]


def _resolve_default_store(repo_root: Path | None = None) -> Path:
    env_store = os.environ.get(STORE_ENV_VAR)
    if env_store:
        return Path(env_store).expanduser().resolve()
    base_root = repo_root or _resolve_repo_root()
    return (base_root / "outputs" / "catalog.sqlite").resolve()


DEFAULT_STORE = _resolve_default_store()

app = typer.Typer(help="Inspect categories and courses in the upload catalog.")
console = Console()


def _resolve_store(path: Path | None) -> CatalogStore:
    resolved = path.expanduser().resolve() if path is not None else _resolve_default_store()
    if not resolved.exists():
        raise typer.BadParameter(f"Catalog store not found at {resolved}")
    return CatalogStore(resolved, read_only=True)


def query_categories(store_path: Path | None = None, topic: Optional[str] = None) -> List[dict]:
    return CategoryStoreAdapter(_resolve_store(store_path)).list_categories(topic=topic)


def query_courses(store_path: Path | None = None, category: Optional[int] = None) -> List[dict]:
    adapter = CourseStoreAdapter(_resolve_store(store_path))
    return [course.to_dict() for course in adapter.list_courses(category=category)]


def query_summary(store_path: Path | None = None) -> Dict[str, Any]:
    store = _resolve_store(store_path)

    def _count(sql: str) -> int:
        rows = store.query(sql)
        return int(rows[0][0]) if rows and rows[0][0] is not None else 0

    return {
        "store": str(store.db_path),
        "counts": {
            "categories": _count("SELECT COUNT(*) FROM course_categories"),
            "top_level_categories": _count("SELECT COUNT(*) FROM course_categories WHERE parent = 0"),
            "courses": _count("SELECT COUNT(*) FROM courses"),
            "enrolment_methods": _count("SELECT COUNT(*) FROM course_enrolments"),
            "role_overrides": _count("SELECT COUNT(*) FROM course_role_names"),
        },
    }


def preview_path(store_path: Path | None, path: str, *, autocreate: bool) -> Dict[str, Any]:
    """Resolve ``path`` in preview mode against a read-only connection."""

    adapter = CategoryStoreAdapter(_resolve_store(store_path))
    reporter = CollectingResolutionReporter()
    resolver = CategoryPathResolver(adapter, reporter)
    result = resolver.resolve(CategoryPath.parse(path), ResolutionMode.PREVIEW, autocreate, ResolutionContext())
    payload: Dict[str, Any] = {
        "path": CategoryPath.parse(path).flatten(),
        "ok": result.ok,
        "events": reporter.messages,
    }
    if result.ok:
        payload["id"] = result.identifier.value
        payload["virtual"] = result.identifier.is_virtual
    else:
        payload["reason"] = result.reason.value
        payload["detail"] = result.detail
    payload["segments"] = [record.to_dict() for record in result.records]
    return payload


def _print_table(headers: list[str], rows: List[dict], keys: list[str]) -> None:
    table = Table(*headers)
    for row in rows:
        table.add_row(*[escape(str(row[key])) if row.get(key) is not None else "" for key in keys])
    console.print(table)


STORE_OPTION_HELP = f"Catalog SQLite path (defaults to {STORE_ENV_VAR} or {DEFAULT_STORE})."


@app.command()
def summary(
    store: Path | None = typer.Option(None, "--store", show_default=False, help=STORE_OPTION_HELP),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table."),
) -> None:
    """Row counts for the catalog."""

    payload = query_summary(store)
    if as_json:
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return
    console.print(f"[bold]Catalog store:[/bold] {payload['store']}")
    table = Table("Metric", "Count")
    for key, value in payload["counts"].items():
        table.add_row(key.replace("_", " ").capitalize(), str(value))
    console.print(table)


@app.command()
def categories(
    store: Path | None = typer.Option(None, "--store", show_default=False, help=STORE_OPTION_HELP),
    topic: Optional[str] = typer.Option(None, help="Case-insensitive substring to filter category paths."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table."),
) -> None:
    """List categories with their full paths."""

    rows = query_categories(store, topic)
    if as_json:
        typer.echo(json.dumps(rows, indent=2, ensure_ascii=False))
        return
    if not rows:
        console.print("[yellow]No categories found.[/yellow]")
        return
    _print_table(["ID", "Path", "ID number", "Parent"], rows, ["id", "path", "idnumber", "parent"])


@app.command()
def courses(
    store: Path | None = typer.Option(None, "--store", show_default=False, help=STORE_OPTION_HELP),
    category: Optional[int] = typer.Option(None, help="Only courses in this category id."),
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    """List courses in the catalog."""

    rows = query_courses(store, category)
    if as_json:
        typer.echo(json.dumps(rows, indent=2, ensure_ascii=False))
        return
    if not rows:
        console.print("[yellow]No courses found.[/yellow]")
        return
    _print_table(
        ["ID", "Shortname", "Fullname", "ID number", "Category"],
        rows,
        ["id", "shortname", "fullname", "idnumber", "category"],
    )


@app.command()
def resolve(
    path: str = typer.Argument(..., help="Category path such as 'Science / Physics'."),
    store: Path | None = typer.Option(None, "--store", show_default=False, help=STORE_OPTION_HELP),
    autocreate: bool = typer.Option(False, "--autocreate", help="Simulate auto-creation of missing categories."),
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    """Preview how a category path would resolve against a read-only store."""

    try:
        payload = preview_path(store, path, autocreate=autocreate)
    except InvalidInputError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if as_json:
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        _print_table(["Segment", "ID", "Origin"], payload["segments"], ["path", "id", "origin"])
        for message in payload["events"]:
            console.print(f"[dim]{escape(message)}[/dim]")
        if payload["ok"]:
            console.print(f"[green]Resolved to {payload['id']}[/green]")
        else:
            console.print(f"[bold red]{escape(payload['detail'])}[/bold red]")
    if not payload["ok"]:
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover
    app()
