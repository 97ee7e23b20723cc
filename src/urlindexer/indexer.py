"""URL indexer: keeps the URL index in sync with request records and queries it.

Typical wiring::

    store = IndexStore(settings.store.db_path)
    async with UrlIndexer(store, record_source=history_store) as indexer:
        indexer.record_changed(request_id, url, "history")
        matches = await indexer.query("api.domain")

``index()`` and the maintenance calls never raise on transaction errors;
they log and return a degraded result. ``StoreOpenError`` and
``UnknownCategoryError`` are the errors callers need to expect.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TYPE_CHECKING

import structlog

from urlindexer.debounce import DebounceQueue
from urlindexer.errors import IndexStoreError, RecordSourceMissingError, UnknownCategoryError
from urlindexer.fragments import diff_fragments
from urlindexer.models.index import IndexEntry, IndexingResult
from urlindexer.models.records import REINDEXABLE_CATEGORIES, OwnerRecord, normalize_category
from urlindexer.search import search_prefix, search_substring
from urlindexer.store import IndexStore

if TYPE_CHECKING:
    from urlindexer.config import Settings
    from urlindexer.protocols import RecordSource

log = structlog.get_logger()

Listener = Callable[[], Awaitable[None] | None]

DEFAULT_DEBOUNCE_MS = 25


class UrlIndexer:
    def __init__(
        self,
        store: IndexStore,
        *,
        record_source: RecordSource | None = None,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
    ) -> None:
        self._store = store
        self._record_source = record_source
        self._listeners: list[Listener] = []
        delay = debounce_ms / 1000
        self.index_queue: DebounceQueue[OwnerRecord] = DebounceQueue(
            "index", self.index, key=lambda record: record.id, delay=delay
        )
        self.delete_queue: DebounceQueue[str] = DebounceQueue(
            "delete", self.delete_indexed_data, key=lambda owner_id: owner_id, delay=delay
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, *, record_source: RecordSource | None = None
    ) -> UrlIndexer:
        store = IndexStore(settings.store.db_path, scan_page_size=settings.store.scan_page_size)
        return cls(store, record_source=record_source, debounce_ms=settings.indexer.debounce_ms)

    @property
    def store(self) -> IndexStore:
        return self._store

    async def open(self) -> None:
        await self._store.open()

    async def close(self) -> None:
        """Flush both queues, then close the store."""
        await self.index_queue.aclose()
        await self.delete_queue.aclose()
        await self._store.close()

    async def __aenter__(self) -> UrlIndexer:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        """Register a callback fired after every completed ``index()`` call."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    async def _notify_indexing_finished(self) -> None:
        for listener in list(self._listeners):
            try:
                outcome = listener()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                log.warning("indexing_listener_error", listener=repr(listener), exc_info=True)

    def record_changed(self, owner_id: str, url: str, category: str) -> None:
        """Schedule re-indexing of a changed record."""
        self.index_queue.push(OwnerRecord(id=owner_id, url=url, category=category))

    def record_deleted(self, owner_id: str) -> None:
        """Schedule removal of a deleted record's index entries."""
        self.delete_queue.push(owner_id)

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    async def index(self, records: Iterable[OwnerRecord]) -> IndexingResult:
        """Bring the index in line with the given records.

        All inserts go out as one transaction and all removals as another.
        """
        by_id = {record.id: record for record in records}
        stored = await self._store.scan_by_owner(list(by_id))

        to_insert: list[IndexEntry] = []
        to_delete: list[IndexEntry] = []
        for record in by_id.values():
            diff = diff_fragments(record, stored.get(record.id, []))
            to_insert.extend(diff.to_insert)
            to_delete.extend(diff.to_delete)

        result = IndexingResult()
        try:
            result.inserted = await self._store.bulk_insert(to_insert)
        except IndexStoreError:
            log.warning("index_write_error", entries=len(to_insert), exc_info=True)
            result.failed = True
        try:
            result.removed = await self._store.bulk_delete([entry.id for entry in to_delete])
        except IndexStoreError:
            log.warning("index_remove_error", entries=len(to_delete), exc_info=True)
            result.failed = True

        log.debug(
            "indexing_complete",
            records=len(by_id),
            inserted=result.inserted,
            removed=result.removed,
            failed=result.failed,
        )
        await self._notify_indexing_finished()
        return result

    async def query(
        self, text: str, *, category: str | None = None, detailed: bool = False
    ) -> dict[str, str]:
        """Return ``{owner_id: category}`` of records whose URL matches ``text``.

        ``detailed`` selects the slower full substring scan over full URLs;
        the default jump search favours matches at the start of a fragment.
        """
        if category:
            category = normalize_category(category)
        if detailed:
            return await search_substring(self._store.iter_full_url_entries(), text, category)
        cursor = await self._store.cursor()
        return await search_prefix(cursor, text, category)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def delete_indexed_data(self, owner_ids: Sequence[str]) -> int:
        """Remove every entry of the given owners. Returns the number removed."""
        stored = await self._store.scan_by_owner(list(owner_ids))
        ids = [entry.id for entries in stored.values() for entry in entries]
        try:
            return await self._store.bulk_delete(ids)
        except IndexStoreError:
            log.warning("index_remove_error", owners=len(owner_ids), exc_info=True)
            return 0

    async def delete_indexed_type(self, category: str) -> int:
        category = normalize_category(category)
        try:
            return await self._store.delete_by_category(category)
        except IndexStoreError:
            log.warning("index_remove_error", category=category, exc_info=True)
            return 0

    async def clear_indexed_data(self) -> int:
        try:
            return await self._store.clear_all()
        except IndexStoreError:
            log.warning("index_clear_error", exc_info=True)
            return 0

    async def reindex(self, category: str) -> IndexingResult:
        """Rebuild the index of one category from the authoritative records."""
        normalized = normalize_category(category)
        if normalized not in REINDEXABLE_CATEGORIES:
            raise UnknownCategoryError(category)
        if self._record_source is None:
            raise RecordSourceMissingError()
        records = await self._record_source.list_records(normalized)
        if not records:
            return IndexingResult()
        return await self.index(
            OwnerRecord(id=record.id, url=record.url, category=normalized) for record in records
        )

    async def datastore_destroyed(self, stores: str | Sequence[str]) -> None:
        """Drop index data of upstream stores that were destroyed.

        Accepts store names (``saved-requests``) or categories (``saved``);
        ``all`` clears the whole index.
        """
        if isinstance(stores, str):
            stores = [stores]
        names = {normalize_category(name) for name in stores}
        if "saved" in names:
            await self.delete_indexed_type("saved")
        if "history" in names:
            await self.delete_indexed_type("history")
        if "all" in names:
            await self.clear_indexed_data()
