"""
Typed configuration helpers for course uploads.

The YAML layout mirrors the sections below; every section except ``store`` has
defaults so a minimal config only needs to say where the catalog lives.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .modes import ImportMode, OutputMode, ResolutionMode, UpdateMode


class StoreConfig(BaseModel):
    """Location of the SQLite catalog holding categories and courses."""

    model_config = ConfigDict()

    sqlite_path: Path = Field(default=Path("outputs/catalog.sqlite"))

    @field_validator("sqlite_path", mode="before")
    @classmethod
    def coerce_path(cls, value: Any) -> Path:
        return Path(value).expanduser().resolve()


class ImportOptions(BaseModel):
    """Levers that decide what an upload run is allowed to do."""

    model_config = ConfigDict(extra="ignore")

    mode: ImportMode = ImportMode.CREATE_NEW
    update_mode: UpdateMode = UpdateMode.NOTHING
    preview: bool = False
    allow_category_autocreate: bool = Field(
        default=False,
        description="Create missing categories named in category_path columns.",
    )
    allow_deletes: bool = False
    allow_renames: bool = False
    shortname_template: Optional[str] = None
    enrolment_methods: List[str] = Field(
        default_factory=lambda: ["manual", "self", "guest", "cohort", "meta"],
    )

    @field_validator("mode", "update_mode", mode="before")
    @classmethod
    def normalize_enum_token(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace("-", "_")
        return value

    @model_validator(mode="after")
    def check_update_mode(self) -> "ImportOptions":
        if self.mode is ImportMode.UPDATE_ONLY and self.update_mode is UpdateMode.NOTHING:
            raise ValueError("update_only mode requires an update_mode other than 'nothing'")
        return self

    # Capability provider interface consumed by the category resolver.
    def can_auto_create_categories(self) -> bool:
        return self.allow_category_autocreate

    def is_preview_mode(self) -> bool:
        return self.preview

    @property
    def resolution_mode(self) -> ResolutionMode:
        return ResolutionMode.PREVIEW if self.preview else ResolutionMode.COMMIT


class CourseDefaults(BaseModel):
    """Values applied when a row leaves a course field blank."""

    model_config = ConfigDict(extra="allow")

    category: Optional[int] = Field(default=None, ge=1)
    format: str = "topics"
    visible: bool = True
    summary: str = ""

    def as_row_values(self) -> Dict[str, Any]:
        payload = self.model_dump(exclude_none=True)
        payload.update(getattr(self, "model_extra", None) or {})
        return payload


class ReportConfig(BaseModel):
    """Where and how the run is reported."""

    output: OutputMode = OutputMode.PLAIN
    provenance_path: Optional[Path] = None

    @field_validator("output", mode="before")
    @classmethod
    def normalize_output(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("provenance_path", mode="before")
    @classmethod
    def coerce_path(cls, value: Any) -> Optional[Path]:
        if value is None:
            return None
        return Path(value).expanduser().resolve()


class UploadConfig(BaseModel):
    """Top-level configuration for an upload run."""

    store: StoreConfig
    options: ImportOptions = Field(default_factory=ImportOptions)
    defaults: CourseDefaults = Field(default_factory=CourseDefaults)
    report: ReportConfig = Field(default_factory=ReportConfig)

    @model_validator(mode="before")
    @classmethod
    def ensure_sections_present(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        if "store" not in values:
            raise ValueError("Missing config sections: store")
        return values


def read_yaml_file(path: Path) -> Dict[str, Any]:
    """Load a YAML file and return a dictionary."""
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping at root of {path}, received {type(data)}")
    return data


def _resolve_config_path(value: Any, base_dir: Path) -> str:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    else:
        path = path.resolve()
    return str(path)


def _absolutize_upload_paths(data: Dict[str, Any], base_dir: Path) -> None:
    store = data.get("store")
    if isinstance(store, dict) and store.get("sqlite_path"):
        store["sqlite_path"] = _resolve_config_path(store["sqlite_path"], base_dir)

    report = data.get("report")
    if isinstance(report, dict) and report.get("provenance_path"):
        report["provenance_path"] = _resolve_config_path(report["provenance_path"], base_dir)


def load_upload_config(path: Path, *, base_dir: Path | None = None) -> UploadConfig:
    """Load the upload config used by the upload_courses CLI."""
    path = path.expanduser().resolve()
    data = read_yaml_file(path)
    _absolutize_upload_paths(data, base_dir=(base_dir or path.parent).resolve())
    try:
        return UploadConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid upload config in {path}") from exc


def merge_import_options(base: ImportOptions, overrides: Dict[str, Any]) -> ImportOptions:
    """
    Return a new ImportOptions object by applying overrides on top of the base config.

    ``None`` values in ``overrides`` are ignored so CLI flags that were not
    passed leave the configured value alone.
    """
    payload = base.model_dump()
    payload.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return ImportOptions.model_validate(payload)
    except ValidationError as exc:
        raise ValueError("Invalid overrides for ImportOptions") from exc
