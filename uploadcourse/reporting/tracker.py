"""Per-row outcome reporting for upload runs."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, TextIO

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from uploadcourse.core.modes import OutputMode

COLUMNS = ("line", "result", "id", "shortname", "fullname", "category_path", "idnumber")


@dataclass
class RowOutcome:
    line: int
    success: bool
    id: Optional[int] = None
    shortname: str = ""
    fullname: str = ""
    category_path: str = ""
    idnumber: str = ""
    status: List[str] = field(default_factory=list)
    action: Optional[str] = None

    def cells(self) -> list[str]:
        return [
            str(self.line),
            "OK" if self.success else "NOK",
            "" if self.id is None else str(self.id),
            self.shortname,
            self.fullname,
            self.category_path,
            self.idnumber,
        ]


@dataclass
class RunTotals:
    total: int = 0
    categories_created: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    errors: int = 0

    def record(self, outcome: RowOutcome) -> None:
        self.total += 1
        if not outcome.success:
            self.errors += 1
        elif outcome.action == "created":
            self.created += 1
        elif outcome.action == "updated":
            self.updated += 1
        elif outcome.action == "deleted":
            self.deleted += 1

    def lines(self) -> list[tuple[str, int]]:
        return [
            ("Categories created", self.categories_created),
            ("Courses total", self.total),
            ("Courses created", self.created),
            ("Courses updated", self.updated),
            ("Courses deleted", self.deleted),
            ("Courses errors", self.errors),
        ]


class Tracker(Protocol):
    def start(self) -> None: ...

    def output(self, outcome: RowOutcome) -> None: ...

    def results(self, totals: RunTotals) -> None: ...

    def finish(self) -> None: ...


class NullTracker:
    def start(self) -> None:
        return None

    def output(self, outcome: RowOutcome) -> None:
        return None

    def results(self, totals: RunTotals) -> None:
        return None

    def finish(self) -> None:
        return None


class PlainTracker:
    """Tab-separated lines; status messages follow their row, indented."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout

    def _write(self, text: str, depth: int = 0) -> None:
        self.stream.write("  " * depth + text + "\n")

    def start(self) -> None:
        self._write("\t".join(COLUMNS))

    def output(self, outcome: RowOutcome) -> None:
        self._write("\t".join(outcome.cells()))
        for message in outcome.status:
            self._write(message, depth=1)

    def results(self, totals: RunTotals) -> None:
        for label, value in totals.lines():
            self._write(f"{label}: {value}")

    def finish(self) -> None:
        self.stream.flush()


class TableTracker:
    """Collects rows into a rich table and prints it when the run finishes."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self.table: Table | None = None
        self._totals: RunTotals | None = None

    def start(self) -> None:
        self.table = Table("Line", "Result", "ID", "Shortname", "Fullname", "Category path", "ID number", "Status", title="Upload courses results")

    def output(self, outcome: RowOutcome) -> None:
        if self.table is None:
            self.start()
        assert self.table is not None
        cells = [escape(cell) for cell in outcome.cells()]
        cells[1] = "[green]OK[/green]" if outcome.success else "[bold red]NOK[/bold red]"
        self.table.add_row(*cells, escape("\n".join(outcome.status)))

    def results(self, totals: RunTotals) -> None:
        self._totals = totals

    def finish(self) -> None:
        if self.table is not None:
            self.console.print(self.table)
        if self._totals is not None:
            summary = Table("Metric", "Count")
            for label, value in self._totals.lines():
                summary.add_row(label, str(value))
            self.console.print(summary)


def make_tracker(
    mode: OutputMode,
    *,
    stream: TextIO | None = None,
    console: Console | None = None,
) -> Tracker:
    if mode is OutputMode.NONE:
        return NullTracker()
    if mode is OutputMode.PLAIN:
        return PlainTracker(stream)
    return TableTracker(console)


__all__ = [
    "NullTracker",
    "PlainTracker",
    "RowOutcome",
    "RunTotals",
    "TableTracker",
    "Tracker",
    "make_tracker",
]
