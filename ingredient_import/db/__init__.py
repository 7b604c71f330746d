"""Catalog store implementations (in-memory and PostgreSQL)."""

from .catalog_store import CatalogEntry, CatalogStore, CommitError, MemoryCatalogStore, RowWriteError, natural_key

__all__ = [
    "CatalogEntry",
    "CatalogStore",
    "CommitError",
    "MemoryCatalogStore",
    "RowWriteError",
    "natural_key",
]
