"""Run reporting: per-row outcomes, totals and the three tracker variants."""

from .tracker import NullTracker, PlainTracker, RowOutcome, RunTotals, TableTracker, Tracker, make_tracker

__all__ = ["NullTracker", "PlainTracker", "RowOutcome", "RunTotals", "TableTracker", "Tracker", "make_tracker"]
