from __future__ import annotations

from pydantic import BaseModel


class IndexEntry(BaseModel):
    """Single row of the URL index."""

    id: str  # "<lowercase fragment>::<category>::<uuid>"
    fragment: str  # Stored as `url`
    owner_id: str  # Stored as `request_id`
    category: str  # Stored as `type`
    is_full_url: bool = False


class IndexingResult(BaseModel):
    """Outcome of one `UrlIndexer.index()` call."""

    inserted: int = 0
    removed: int = 0
    failed: bool = False
