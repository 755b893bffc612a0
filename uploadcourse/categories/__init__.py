"""Category reference resolution (id, idnumber and hierarchical name paths)."""

from .cache import CachedCategory, PathCache, Unresolved
from .events import CollectingResolutionReporter, NullResolutionReporter, ResolutionEventKind, ResolutionReporter
from .identifiers import VIRTUAL_BASE, CategoryId, CategoryPath, CategoryRecord, RecordOrigin
from .resolver import (
    CategoryPathResolver,
    CategoryReference,
    Denied,
    PartiallyResolved,
    ResolutionContext,
    ResolutionResult,
    Resolved,
)
from .store import CapabilityProvider, CategoryStore
from .virtual import VirtualCategoryTable

__all__ = [
    "CachedCategory",
    "CapabilityProvider",
    "CategoryId",
    "CategoryPath",
    "CategoryPathResolver",
    "CategoryRecord",
    "CategoryReference",
    "CategoryStore",
    "CollectingResolutionReporter",
    "Denied",
    "NullResolutionReporter",
    "PartiallyResolved",
    "PathCache",
    "RecordOrigin",
    "ResolutionContext",
    "ResolutionEventKind",
    "ResolutionReporter",
    "ResolutionResult",
    "Resolved",
    "Unresolved",
    "VIRTUAL_BASE",
    "VirtualCategoryTable",
]
