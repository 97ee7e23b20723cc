"""SQLite-backed URL index store.

One table of index entries keyed by ``id`` with secondary indexes on the
owner id, the category and the full-URL flag. Read paths catch
``aiosqlite.Error`` and degrade to partial results; write paths roll back
and raise ``IndexStoreError`` so the indexing pipeline can report the
failure without crashing its caller. Only ``open()`` failures are fatal.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterator, Sequence
from pathlib import Path

import aiosqlite
import structlog

from urlindexer.errors import IndexStoreError, StoreOpenError
from urlindexer.models.index import IndexEntry

log = structlog.get_logger()

SCHEMA_VERSION = 1

_CREATE_URLS_TABLE = """
CREATE TABLE IF NOT EXISTS urls (
    id          TEXT PRIMARY KEY,
    url         TEXT NOT NULL,
    request_id  TEXT NOT NULL,
    type        TEXT NOT NULL,
    full_url    INTEGER NOT NULL DEFAULT 0
) WITHOUT ROWID
"""

# Index creation is what an upgrade from an older file adds; the table
# statement is a no-op when the table already exists.
_MIGRATIONS: dict[int, tuple[str, ...]] = {
    1: (
        _CREATE_URLS_TABLE,
        "CREATE INDEX IF NOT EXISTS idx_urls_url ON urls(url)",
        "CREATE INDEX IF NOT EXISTS idx_urls_request_id ON urls(request_id)",
        "CREATE INDEX IF NOT EXISTS idx_urls_type ON urls(type)",
        "CREATE INDEX IF NOT EXISTS idx_urls_full_url ON urls(full_url)",
    ),
}

_COLUMNS = "id, url, request_id, type, full_url"

# SQLite's default limit on bound parameters is 999 on older builds
_MAX_PARAMS = 500


def _row_to_entry(row: Sequence[object]) -> IndexEntry:
    return IndexEntry(
        id=row[0],
        fragment=row[1],
        owner_id=row[2],
        category=row[3],
        is_full_url=bool(row[4]),
    )


def _chunks(items: Sequence[str], size: int = _MAX_PARAMS) -> list[Sequence[str]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class KeyCursor:
    """Forward-only cursor over the primary key order.

    Rows are read in pages; ``seek`` reuses the buffered page when the
    target falls inside it.
    """

    def __init__(self, db: aiosqlite.Connection, page_size: int) -> None:
        self._db = db
        self._page_size = page_size
        self._buffer: deque[IndexEntry] = deque()
        self._current: str | None = None
        self._exhausted = False

    async def next(self) -> IndexEntry | None:
        """Advance to the entry after the current one."""
        if not self._buffer and not self._exhausted:
            if self._current is None:
                await self._fetch("SELECT " + _COLUMNS + " FROM urls ORDER BY id LIMIT ?", ())
            else:
                await self._fetch(
                    "SELECT " + _COLUMNS + " FROM urls WHERE id > ? ORDER BY id LIMIT ?",
                    (self._current,),
                )
        return self._take()

    async def seek(self, key: str) -> IndexEntry | None:
        """Move to the first entry whose id is ``>= key``.

        A target at or behind the current position advances by one instead,
        so the cursor never revisits an entry.
        """
        if self._current is not None and key <= self._current:
            return await self.next()
        while self._buffer and self._buffer[0].id < key:
            self._buffer.popleft()
        if not self._buffer:
            self._exhausted = False
            await self._fetch(
                "SELECT " + _COLUMNS + " FROM urls WHERE id >= ? ORDER BY id LIMIT ?",
                (key,),
            )
        return self._take()

    async def _fetch(self, sql: str, params: tuple[str, ...]) -> None:
        try:
            rows = list(await self._db.execute_fetchall(sql, (*params, self._page_size)))
        except aiosqlite.Error:
            # Ends the scan; callers keep whatever they matched so far
            log.warning("index_read_error", scan="cursor", key=self._current, exc_info=True)
            self._exhausted = True
            return
        self._buffer.extend(_row_to_entry(row) for row in rows)
        self._exhausted = len(rows) < self._page_size

    def _take(self) -> IndexEntry | None:
        if not self._buffer:
            return None
        entry = self._buffer.popleft()
        self._current = entry.id
        return entry


class IndexStore:
    """Owns the connection to the URL index database."""

    def __init__(self, db_path: str, *, scan_page_size: int = 256) -> None:
        self._db_path = db_path
        self._scan_page_size = scan_page_size
        self._db: aiosqlite.Connection | None = None
        self._open_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def open(self) -> aiosqlite.Connection:
        """Return the cached connection, connecting and migrating on first use."""
        if self._db is not None:
            return self._db
        async with self._open_lock:
            if self._db is not None:
                return self._db
            db: aiosqlite.Connection | None = None
            target = self._db_path
            try:
                if target != ":memory:":
                    path = Path(target).expanduser()
                    path.parent.mkdir(parents=True, exist_ok=True)
                    target = str(path)
                db = await aiosqlite.connect(target)
                await db.execute("PRAGMA journal_mode = WAL")
                await self._migrate(db)
            except (aiosqlite.Error, OSError) as exc:
                log.error("index_store_open_error", db_path=self._db_path, exc_info=True)
                if db is not None:
                    await db.close()
                raise StoreOpenError() from exc
            self._db = db
            return db

    async def close(self) -> None:
        if self._db is None:
            return
        db, self._db = self._db, None
        await db.close()

    async def _migrate(self, db: aiosqlite.Connection) -> None:
        cursor = await db.execute("PRAGMA user_version")
        row = await cursor.fetchone()
        version = row[0] if row else 0
        if version >= SCHEMA_VERSION:
            return
        for target in range(version + 1, SCHEMA_VERSION + 1):
            for statement in _MIGRATIONS[target]:
                await db.execute(statement)
        # PRAGMA does not accept bound parameters
        await db.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        await db.commit()
        log.info("index_store_migrated", from_version=version, to_version=SCHEMA_VERSION)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def bulk_insert(self, entries: Sequence[IndexEntry]) -> int:
        """Insert all entries in one transaction. Any collision aborts the batch."""
        if not entries:
            return 0
        db = await self.open()
        async with self._write_lock:
            try:
                await db.executemany(
                    "INSERT INTO urls (" + _COLUMNS + ") VALUES (?, ?, ?, ?, ?)",
                    [
                        (e.id, e.fragment, e.owner_id, e.category, int(e.is_full_url))
                        for e in entries
                    ],
                )
                await db.commit()
            except aiosqlite.Error as exc:
                await self._rollback(db)
                raise IndexStoreError(f"bulk insert of {len(entries)} entries failed") from exc
        return len(entries)

    async def bulk_delete(self, ids: Sequence[str]) -> int:
        """Delete entries by id in one transaction. Unknown ids are ignored."""
        if not ids:
            return 0
        db = await self.open()
        removed = 0
        async with self._write_lock:
            try:
                for chunk in _chunks(list(ids)):
                    placeholders = ", ".join("?" * len(chunk))
                    cursor = await db.execute(
                        f"DELETE FROM urls WHERE id IN ({placeholders})", tuple(chunk)
                    )
                    removed += cursor.rowcount
                await db.commit()
            except aiosqlite.Error as exc:
                await self._rollback(db)
                raise IndexStoreError(f"bulk delete of {len(ids)} entries failed") from exc
        return removed

    async def delete_by_category(self, category: str) -> int:
        db = await self.open()
        async with self._write_lock:
            try:
                cursor = await db.execute("DELETE FROM urls WHERE type = ?", (category,))
                await db.commit()
            except aiosqlite.Error as exc:
                await self._rollback(db)
                raise IndexStoreError(f"deleting category {category!r} failed") from exc
        return cursor.rowcount

    async def clear_all(self) -> int:
        db = await self.open()
        async with self._write_lock:
            try:
                cursor = await db.execute("DELETE FROM urls")
                await db.commit()
            except aiosqlite.Error as exc:
                await self._rollback(db)
                raise IndexStoreError("clearing the index failed") from exc
        return cursor.rowcount

    async def _rollback(self, db: aiosqlite.Connection) -> None:
        try:
            await db.rollback()
        except aiosqlite.Error:
            log.warning("index_store_rollback_error", exc_info=True)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def scan_by_owner(self, owner_ids: Sequence[str]) -> dict[str, list[IndexEntry]]:
        """Map each owner id to its stored entries. Partial on read failure."""
        result: dict[str, list[IndexEntry]] = {owner_id: [] for owner_id in owner_ids}
        if not result:
            return result
        db = await self.open()
        try:
            for chunk in _chunks(list(result)):
                placeholders = ", ".join("?" * len(chunk))
                rows = await db.execute_fetchall(
                    f"SELECT {_COLUMNS} FROM urls WHERE request_id IN ({placeholders}) "
                    "ORDER BY id",
                    tuple(chunk),
                )
                for row in rows:
                    entry = _row_to_entry(row)
                    result[entry.owner_id].append(entry)
        except aiosqlite.Error:
            log.warning("index_read_error", scan="owner", owners=len(result), exc_info=True)
        return result

    async def iter_full_url_entries(self) -> AsyncIterator[IndexEntry]:
        """Yield every full-URL entry in key order. Stops early on read failure."""
        db = await self.open()
        try:
            async with db.execute(
                f"SELECT {_COLUMNS} FROM urls WHERE full_url = 1 ORDER BY id"
            ) as cursor:
                async for row in cursor:
                    yield _row_to_entry(row)
        except aiosqlite.Error:
            log.warning("index_read_error", scan="full_url", exc_info=True)

    async def cursor(self) -> KeyCursor:
        db = await self.open()
        return KeyCursor(db, self._scan_page_size)

    async def all_entries(self) -> list[IndexEntry]:
        db = await self.open()
        try:
            rows = await db.execute_fetchall(f"SELECT {_COLUMNS} FROM urls ORDER BY id")
        except aiosqlite.Error:
            log.warning("index_read_error", scan="all", exc_info=True)
            return []
        return [_row_to_entry(row) for row in rows]

    async def count(self, owner_id: str | None = None) -> int:
        db = await self.open()
        try:
            if owner_id is None:
                cursor = await db.execute("SELECT COUNT(*) FROM urls")
            else:
                cursor = await db.execute(
                    "SELECT COUNT(*) FROM urls WHERE request_id = ?", (owner_id,)
                )
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("index_read_error", scan="count", exc_info=True)
            return 0
        return row[0] if row else 0
