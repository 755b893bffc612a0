"""Upload bootstrap and run utilities."""

from __future__ import annotations

from .bootstrap import bootstrap_upload
from .context import UploadContext
from .runtime import load_csv_rows, run_upload

__all__ = ["UploadContext", "bootstrap_upload", "load_csv_rows", "run_upload"]
