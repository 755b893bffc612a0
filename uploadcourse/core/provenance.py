"""JSONL provenance trail for upload runs.

Each category decision and row outcome can be appended to a JSONL file so a
preview run can be diffed against the commit run that follows it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from pydantic import BaseModel, Field


class ProvenanceEvent(BaseModel):
    """Structured record for upload activity."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    stage: str = Field(..., description="Run stage, e.g. 'bootstrap', 'category' or 'row'.")
    message: str = Field(..., description="Human-readable description of the event.")
    line: Optional[int] = Field(default=None, description="CSV line the event belongs to, if any.")
    payload: Dict[str, Any] = Field(default_factory=dict)


class ProvenanceLogger:
    """Append-only JSONL writer; a logger without a path only normalizes events."""

    def __init__(self, output_path: Path | None):
        self.output_path = output_path
        if self.output_path is not None:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def enabled(self) -> bool:
        return self.output_path is not None

    def log(self, event: ProvenanceEvent | Dict[str, Any]) -> ProvenanceEvent:
        if not isinstance(event, ProvenanceEvent):
            event = ProvenanceEvent(**event)
        if self.output_path is None:
            return event
        with self.output_path.open("a", encoding="utf-8") as handle:
            handle.write(event.model_dump_json() + "\n")
        return event

    def record(self, stage: str, message: str, *, line: int | None = None, **payload: Any) -> ProvenanceEvent:
        """Shorthand for ``log(ProvenanceEvent(...))``."""
        return self.log(ProvenanceEvent(stage=stage, message=message, line=line, payload=payload))

    def extend(self, events: Iterable[ProvenanceEvent | Dict[str, Any]]) -> None:
        for event in events:
            self.log(event)


__all__ = ["ProvenanceEvent", "ProvenanceLogger"]
