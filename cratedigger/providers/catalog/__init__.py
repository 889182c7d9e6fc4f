"""Catalog-store implementations."""

from cratedigger.providers.catalog.sqlite_catalog_store import SQLiteCatalogStore

__all__ = ["SQLiteCatalogStore"]
