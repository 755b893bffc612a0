"""
Bulk course upload with hierarchical category resolution.

The package stays importable without a configured catalog store so the
resolver and helpers can be used (and tested) in isolation.
"""

from importlib import metadata


def get_version() -> str:
    """Return the installed project version."""
    try:
        return metadata.version("course-uploader")
    except metadata.PackageNotFoundError:
        return "0.0.0"


__all__ = ["get_version"]
