"""Shared context objects for an upload run."""

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from catalog.adapters import CategoryStoreAdapter, CourseStoreAdapter
from uploadcourse.categories.resolver import ResolutionContext
from uploadcourse.core.config import UploadConfig
from uploadcourse.core.provenance import ProvenanceLogger


class UploadContext(BaseModel):
    """Aggregated runtime context for one upload run."""

    config: UploadConfig
    categories: CategoryStoreAdapter
    courses: CourseStoreAdapter
    provenance: ProvenanceLogger
    resolution: ResolutionContext = Field(default_factory=ResolutionContext)
    env: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def preview(self) -> bool:
        return self.config.options.preview
