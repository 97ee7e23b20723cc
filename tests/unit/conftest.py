"""Unit-specific fixtures (no I/O beyond in-memory SQLite)."""

from __future__ import annotations

import pytest

from urlindexer.indexer import UrlIndexer
from urlindexer.models.records import OwnerRecord
from urlindexer.store import IndexStore


class StaticRecordSource:
    """Record source serving a fixed list of records per category."""

    def __init__(self, records: list[OwnerRecord]) -> None:
        self.records = records
        self.calls: list[str] = []

    async def list_records(self, category: str) -> list[OwnerRecord]:
        self.calls.append(category)
        return [record for record in self.records if record.category == category]


@pytest.fixture()
async def store():
    """In-memory index store for unit tests."""
    s = IndexStore(":memory:", scan_page_size=4)
    await s.open()
    yield s
    await s.close()


@pytest.fixture()
def record_source() -> StaticRecordSource:
    return StaticRecordSource([])


@pytest.fixture()
async def indexer(store: IndexStore, record_source: StaticRecordSource):
    idx = UrlIndexer(store, record_source=record_source, debounce_ms=10)
    yield idx
    await idx.index_queue.aclose()
    await idx.delete_queue.aclose()
