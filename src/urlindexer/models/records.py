from __future__ import annotations

from pydantic import BaseModel, field_validator

# Upstream record stores are named after their data store; the index only
# keeps the short form.
_CATEGORY_ALIASES = {
    "saved-requests": "saved",
    "history-requests": "history",
}

# Categories that have an authoritative record store to rebuild from
REINDEXABLE_CATEGORIES = frozenset({"saved", "history"})


def normalize_category(category: str) -> str:
    return _CATEGORY_ALIASES.get(category, category)


class OwnerRecord(BaseModel):
    """A request record whose URL is indexed."""

    id: str
    url: str
    category: str

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        return normalize_category(v)
