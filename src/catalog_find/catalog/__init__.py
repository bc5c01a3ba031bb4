"""Catalog access: table models, session, and paged cursors."""

from catalog_find.catalog.common import build_catalog_engine
from catalog_find.catalog.cursor import BatchResult, CursorHandle, CursorStream
from catalog_find.catalog.session import CatalogSession, SortOrder, SqlCatalogSession

__all__ = [
    "BatchResult",
    "CatalogSession",
    "CursorHandle",
    "CursorStream",
    "SortOrder",
    "SqlCatalogSession",
    "build_catalog_engine",
]
