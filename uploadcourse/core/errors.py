"""Error taxonomy for course uploads."""

from __future__ import annotations

from enum import Enum


class UploadError(Exception):
    """Base class for upload failures raised by this package."""


class InvalidInputError(UploadError, ValueError):
    """Raised before resolution starts when a path or idnumber is malformed."""


class CategoryCreationError(UploadError):
    """Raised by a category store when it rejects a creation request."""


class StoreUnavailableError(UploadError, RuntimeError):
    """Raised when the persisted store cannot be reached; aborts the whole run."""


class DenialReason(str, Enum):
    """Row-scoped reasons a category reference could not be resolved."""

    CREATION_FAILED = "creation_failed"
    AUTO_CREATE_DENIED = "auto_create_denied"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"

    @property
    def message(self) -> str:
        return _DENIAL_MESSAGES[self]


_DENIAL_MESSAGES = {
    DenialReason.CREATION_FAILED: "creation failed",
    DenialReason.AUTO_CREATE_DENIED: "auto-create not permitted",
    DenialReason.AMBIGUOUS: "ambiguous category name under parent",
    DenialReason.NOT_FOUND: "category not found",
}


__all__ = [
    "CategoryCreationError",
    "DenialReason",
    "InvalidInputError",
    "StoreUnavailableError",
    "UploadError",
]
