"""Inverted URL index for REST client request records."""

from __future__ import annotations

from urlindexer.errors import (
    ErrorCode,
    IndexStoreError,
    RecordSourceMissingError,
    StoreOpenError,
    UnknownCategoryError,
    UrlIndexerError,
)
from urlindexer.indexer import UrlIndexer
from urlindexer.models import IndexEntry, IndexingResult, OwnerRecord
from urlindexer.store import IndexStore

__all__ = [
    "ErrorCode",
    "IndexEntry",
    "IndexStore",
    "IndexStoreError",
    "IndexingResult",
    "OwnerRecord",
    "RecordSourceMissingError",
    "StoreOpenError",
    "UnknownCategoryError",
    "UrlIndexer",
    "UrlIndexerError",
]
