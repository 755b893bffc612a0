"""Persisted catalog of categories and courses."""

from .adapters import CategoryStoreAdapter, CourseRecord, CourseStoreAdapter
from .storage import CatalogStore

__all__ = ["CatalogStore", "CategoryStoreAdapter", "CourseRecord", "CourseStoreAdapter"]
