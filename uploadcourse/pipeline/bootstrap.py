"""Bootstrap helpers for upload runs."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping

from dotenv import load_dotenv

from catalog.adapters import CategoryStoreAdapter, CourseStoreAdapter
from catalog.storage import CatalogStore
from uploadcourse.core.config import (
    ReportConfig,
    StoreConfig,
    UploadConfig,
    load_upload_config,
    merge_import_options,
)
from uploadcourse.core.modes import OutputMode
from uploadcourse.core.provenance import ProvenanceLogger

from .context import UploadContext

DEFAULT_CONFIG_PATH = Path("config/upload.yaml")
DEFAULT_STORE_PATH = Path("outputs/catalog.sqlite")
ENV_STORE = "COURSE_UPLOAD_STORE"
ENV_REPO_ROOT = "COURSE_UPLOAD_REPO_ROOT"
LOGGER = logging.getLogger(__name__)


def _capture_env(keys: tuple[str, ...]) -> Dict[str, str]:
    """Return a filtered snapshot of environment variables for provenance."""
    snapshot: Dict[str, str] = {}
    for key in keys:
        value = os.getenv(key)
        if value is not None:
            snapshot[key] = value
    return snapshot


def _load_config(config_path: Path | None, repo_root: Path) -> UploadConfig:
    if config_path is not None:
        return load_upload_config(config_path, base_dir=repo_root)
    default_path = repo_root / DEFAULT_CONFIG_PATH
    if default_path.exists():
        return load_upload_config(default_path, base_dir=repo_root)
    LOGGER.debug("No upload config at %s; using built-in defaults", default_path)
    return UploadConfig(store=StoreConfig(sqlite_path=repo_root / DEFAULT_STORE_PATH))


def bootstrap_upload(
    config_path: Path | None = None,
    *,
    repo_root: Path | None = None,
    store_override: Path | None = None,
    option_overrides: Mapping[str, Any] | None = None,
    output_override: OutputMode | None = None,
    provenance_override: Path | None = None,
    env_keys: tuple[str, ...] = (ENV_STORE, ENV_REPO_ROOT),
) -> UploadContext:
    """
    Load configuration and environment, open the catalog, build the run context.

    Parameters
    ----------
    config_path:
        Upload YAML. Defaults to ``config/upload.yaml`` under ``repo_root`` when
        that file exists, otherwise built-in defaults.
    repo_root:
        Base for relative paths. Defaults to ``COURSE_UPLOAD_REPO_ROOT`` or the
        current directory.
    store_override:
        Catalog SQLite path; wins over ``COURSE_UPLOAD_STORE`` and the config.
    option_overrides:
        ``ImportOptions`` fields set from CLI flags; ``None`` values are ignored.
    """

    env_root = os.getenv(ENV_REPO_ROOT)
    repo_root = (repo_root or (Path(env_root) if env_root else Path.cwd())).expanduser().resolve()
    load_dotenv(repo_root / ".env")

    config = _load_config(config_path.resolve() if config_path else None, repo_root)

    env_store = os.getenv(ENV_STORE)
    store_path = store_override or (Path(env_store) if env_store else None)
    if store_path is not None:
        config = config.model_copy(update={"store": StoreConfig(sqlite_path=store_path)})
    if option_overrides:
        config = config.model_copy(update={"options": merge_import_options(config.options, dict(option_overrides))})
    if output_override is not None or provenance_override is not None:
        report = ReportConfig(
            output=output_override or config.report.output,
            provenance_path=provenance_override or config.report.provenance_path,
        )
        config = config.model_copy(update={"report": report})

    store = CatalogStore(config.store.sqlite_path)
    provenance = ProvenanceLogger(config.report.provenance_path)
    ctx = UploadContext(
        config=config,
        categories=CategoryStoreAdapter(store),
        courses=CourseStoreAdapter(store),
        provenance=provenance,
        env=_capture_env(env_keys),
    )
    ctx.provenance.record(
        "bootstrap",
        "Catalog opened",
        store=str(config.store.sqlite_path),
        mode=config.options.mode.value,
        preview=config.options.preview,
        allow_category_autocreate=config.options.allow_category_autocreate,
    )
    LOGGER.info(
        "Catalog %s opened (mode=%s, preview=%s, category autocreate=%s)",
        config.store.sqlite_path,
        config.options.mode.value,
        config.options.preview,
        config.options.allow_category_autocreate,
    )
    return ctx
