"""
Configuration, modes, errors and provenance shared by the upload pipeline.
"""

from .config import ImportOptions, UploadConfig, load_upload_config
from .errors import CategoryCreationError, DenialReason, InvalidInputError, StoreUnavailableError, UploadError
from .modes import ImportMode, OutputMode, ResolutionMode, UpdateMode, parse_mode
from .provenance import ProvenanceEvent, ProvenanceLogger

__all__ = [
    "CategoryCreationError",
    "DenialReason",
    "ImportMode",
    "ImportOptions",
    "InvalidInputError",
    "OutputMode",
    "ProvenanceEvent",
    "ProvenanceLogger",
    "ResolutionMode",
    "StoreUnavailableError",
    "UpdateMode",
    "UploadConfig",
    "UploadError",
    "load_upload_config",
    "parse_mode",
]
