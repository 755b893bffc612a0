"""Per-segment status hooks emitted by the category resolver."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Protocol

from uploadcourse.core.errors import DenialReason

from .identifiers import CategoryRecord


class ResolutionReporter(Protocol):
    def category_created(self, record: CategoryRecord) -> None: ...

    def category_will_be_created(self, record: CategoryRecord) -> None: ...

    def category_resolution_denied(self, record: CategoryRecord, reason: DenialReason) -> None: ...


class NullResolutionReporter:
    def category_created(self, record: CategoryRecord) -> None:
        return None

    def category_will_be_created(self, record: CategoryRecord) -> None:
        return None

    def category_resolution_denied(self, record: CategoryRecord, reason: DenialReason) -> None:
        return None


class ResolutionEventKind(str, Enum):
    CREATED = "category_created"
    WILL_BE_CREATED = "category_will_be_created"
    DENIED = "category_resolution_denied"


@dataclass(frozen=True)
class ResolutionEvent:
    kind: ResolutionEventKind
    record: CategoryRecord
    reason: DenialReason | None = None

    @property
    def message(self) -> str:
        if self.kind is ResolutionEventKind.CREATED:
            return f"Category created: {self.record.path}"
        if self.kind is ResolutionEventKind.WILL_BE_CREATED:
            return f"Category does not exist, will be created: {self.record.path}"
        reason = self.reason.message if self.reason else "denied"
        return f"Could not resolve category '{self.record.path}': {reason}"


@dataclass
class CollectingResolutionReporter:
    """Keeps every event so a row can report what happened to its categories."""

    events: List[ResolutionEvent] = field(default_factory=list)

    def category_created(self, record: CategoryRecord) -> None:
        self.events.append(ResolutionEvent(ResolutionEventKind.CREATED, record))

    def category_will_be_created(self, record: CategoryRecord) -> None:
        self.events.append(ResolutionEvent(ResolutionEventKind.WILL_BE_CREATED, record))

    def category_resolution_denied(self, record: CategoryRecord, reason: DenialReason) -> None:
        self.events.append(ResolutionEvent(ResolutionEventKind.DENIED, record, reason))

    def of_kind(self, kind: ResolutionEventKind) -> List[ResolutionEvent]:
        return [event for event in self.events if event.kind is kind]

    @property
    def messages(self) -> List[str]:
        return [event.message for event in self.events]


__all__ = [
    "CollectingResolutionReporter",
    "NullResolutionReporter",
    "ResolutionEvent",
    "ResolutionEventKind",
    "ResolutionReporter",
]
