"""Run an upload against a bootstrapped context."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Mapping

from rich.console import Console

from uploadcourse.courses.processor import CourseProcessor, read_rows
from uploadcourse.reporting.tracker import RunTotals, Tracker, make_tracker

from .context import UploadContext


def run_upload(
    ctx: UploadContext,
    rows: Iterable[Mapping[str, Any]],
    *,
    tracker: Tracker | None = None,
    console: Console | None = None,
) -> RunTotals:
    """Process ``rows`` in order and return the run totals."""

    tracker = tracker or make_tracker(ctx.config.report.output, console=console)
    processor = CourseProcessor(
        categories=ctx.categories,
        courses=ctx.courses,
        options=ctx.config.options,
        defaults=ctx.config.defaults,
        tracker=tracker,
        provenance=ctx.provenance,
        context=ctx.resolution,
    )
    return processor.execute(rows)


def load_csv_rows(path: Path, *, encoding: str = "utf-8-sig") -> list[dict[str, str]]:
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")
    with path.open("r", encoding=encoding, newline="") as handle:
        return read_rows(handle)
