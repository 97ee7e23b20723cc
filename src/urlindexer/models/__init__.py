from __future__ import annotations

from urlindexer.models.index import IndexEntry, IndexingResult
from urlindexer.models.records import (
    REINDEXABLE_CATEGORIES,
    OwnerRecord,
    normalize_category,
)

__all__ = [
    # index
    "IndexEntry",
    "IndexingResult",
    # records
    "OwnerRecord",
    "REINDEXABLE_CATEGORIES",
    "normalize_category",
]
