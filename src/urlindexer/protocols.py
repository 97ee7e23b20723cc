"""Structural interfaces the indexer depends on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from urlindexer.models.index import IndexEntry
    from urlindexer.models.records import OwnerRecord


class RecordSource(Protocol):
    """Authoritative store of request records, read by ``reindex``."""

    async def list_records(self, category: str) -> list[OwnerRecord]: ...


class OrderedCursor(Protocol):
    """Forward cursor over index entries in ascending id order."""

    async def next(self) -> IndexEntry | None: ...

    async def seek(self, key: str) -> IndexEntry | None: ...
