"""SQLite store holding records, categories and their association."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Iterable

from ..engine.items import FeedItem, SearchResult
from ..errors import StorageError, StorageIntegrityError
from ..logging_conf import component_logger

# guid is optional and not unique across feeds, so the link is the dedup key.
RECORD_SCHEMA = """
    CREATE TABLE IF NOT EXISTS "record" (
        "id" INTEGER PRIMARY KEY AUTOINCREMENT,
        "guid" TEXT,
        "title" TEXT,
        "link" TEXT UNIQUE,
        "description" TEXT,
        "published" TEXT
    )
"""

CATEGORY_SCHEMA = """
    CREATE TABLE IF NOT EXISTS "category" (
        "id" INTEGER PRIMARY KEY AUTOINCREMENT,
        "name" TEXT NOT NULL UNIQUE
    )
"""

CATEGORY_TO_RECORD_SCHEMA = """
    CREATE TABLE IF NOT EXISTS "categoryToRecord" (
        "recordId" INTEGER NOT NULL,
        "categoryId" INTEGER NOT NULL,
        UNIQUE ("recordId", "categoryId"),
        FOREIGN KEY ("recordId") REFERENCES record(id)
            ON DELETE CASCADE ON UPDATE NO ACTION,
        FOREIGN KEY ("categoryId") REFERENCES category(id)
            ON DELETE CASCADE ON UPDATE NO ACTION
    )
"""

TITLE_INDEX_SCHEMA = 'CREATE INDEX IF NOT EXISTS "titleIndex" ON record(title)'

SCHEMAS = (RECORD_SCHEMA, CATEGORY_SCHEMA, CATEGORY_TO_RECORD_SCHEMA, TITLE_INDEX_SCHEMA)

RECORD_INSERT = """
    INSERT OR IGNORE INTO record(guid, title, link, description, published)
    VALUES (?, ?, ?, ?, ?)
"""
CATEGORY_INSERT = "INSERT OR IGNORE INTO category(name) VALUES (?)"
RECORD_ID_SELECT = "SELECT id FROM record WHERE link = ?"
CATEGORY_ID_SELECT = "SELECT id, name FROM category WHERE name IN ({placeholders})"
CATEGORY_TO_RECORD_INSERT = (
    'INSERT OR IGNORE INTO "categoryToRecord"(recordId, categoryId) VALUES (?, ?)'
)

# Rows of one record must stay contiguous: search() groups on record.id runs.
RECORD_SEARCH = """
    SELECT
        record.id AS id,
        record.guid AS guid,
        record.title AS title,
        record.link AS link,
        record.description AS description,
        record.published AS published,
        category.name AS category
    FROM record
        LEFT JOIN "categoryToRecord" AS c2r ON c2r.recordId = record.id
        LEFT JOIN category ON c2r.categoryId = category.id
    WHERE instr(record.title, ?) > 0
    ORDER BY record.id ASC, c2r.rowid ASC
"""

TABLES = ("record", "category", "categoryToRecord")


@dataclass(slots=True)
class PersistResult:
    record_id: int
    created: bool
    categories_linked: int


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def _unique_names(names: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(name for name in names if name))


def group_rows(rows: Iterable[sqlite3.Row]) -> list[SearchResult]:
    """Collapse consecutive rows sharing a record id into one result."""

    results: list[SearchResult] = []
    current: SearchResult | None = None
    current_id: int | None = None
    for row in rows:
        if current is None or row["id"] != current_id:
            current = SearchResult(
                guid=row["guid"] or "",
                title=row["title"] or "",
                link=row["link"] or "",
                description=row["description"] or "",
                published=row["published"] or "",
            )
            current_id = row["id"]
            results.append(current)
        if row["category"] is not None:
            current.categories.append(row["category"])
    return results


class Store:
    """Own the schema and the dedup-persist and search queries."""

    def __init__(self, path: Path | str) -> None:
        self.path = path
        self.logger = component_logger("store")
        self._lock = Lock()
        try:
            if str(path) != ":memory:":
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            # Transactions are managed explicitly with BEGIN/COMMIT/ROLLBACK.
            self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"could not open database {path}: {exc}") from exc
        self.initialise()

    def initialise(self) -> None:
        """Create tables and the title index when they do not exist yet."""

        with self._lock:
            try:
                for schema in SCHEMAS:
                    self._conn.execute(schema)
            except sqlite3.Error as exc:
                raise StorageError(f"could not initialise schema: {exc}") from exc
        self.logger.debug("schema_ready", path=str(self.path))

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------
    def persist(self, item: FeedItem) -> PersistResult:
        """Insert the record and attach its categories in one transaction.

        An already stored link is not an error: the record row is left
        untouched but the item's categories are still attached to it.
        """

        with self._lock:
            conn = self._conn
            try:
                conn.execute("BEGIN")
            except sqlite3.Error as exc:
                raise StorageError(f"could not begin transaction: {exc}") from exc
            try:
                result = self._persist_in_transaction(conn, item)
                conn.execute("COMMIT")
            except Exception as exc:
                # Bind errors such as unencodable text surface outside sqlite3.Error.
                self._rollback(conn, exc)
                if isinstance(exc, StorageError):
                    raise
                raise StorageError(f"error when saving {item.link!r}: {exc}") from exc
        return result

    def _persist_in_transaction(self, conn: sqlite3.Connection, item: FeedItem) -> PersistResult:
        cursor = conn.execute(
            RECORD_INSERT,
            (item.guid, item.title, item.link, item.description, item.published),
        )
        created = cursor.rowcount == 1

        names = _unique_names(item.categories)
        for name in names:
            conn.execute(CATEGORY_INSERT, (name,))

        row = conn.execute(RECORD_ID_SELECT, (item.link,)).fetchone()
        if row is None:
            raise StorageError(f"record for link {item.link!r} vanished inside transaction")
        record_id = row["id"]

        if not names:
            return PersistResult(record_id=record_id, created=created, categories_linked=0)

        category_rows = conn.execute(
            CATEGORY_ID_SELECT.format(placeholders=_placeholders(len(names))), names
        ).fetchall()
        pairs = [(record_id, category_row["id"]) for category_row in category_rows]
        cursor = conn.executemany(CATEGORY_TO_RECORD_INSERT, pairs)
        return PersistResult(
            record_id=record_id, created=created, categories_linked=max(cursor.rowcount, 0)
        )

    def _rollback(self, conn: sqlite3.Connection, reason: Exception) -> None:
        try:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
        except sqlite3.Error as exc:
            raise StorageIntegrityError(
                f"could not rollback the transaction: {exc}. Rollback reason: {reason}"
            ) from exc

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------
    def search(self, query: str) -> list[SearchResult]:
        """Return records whose title contains ``query``, ordered by id."""

        with self._lock:
            try:
                rows = self._conn.execute(RECORD_SEARCH, (query,)).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"error when searching {query!r}: {exc}") from exc
        return group_rows(rows)

    def counts(self) -> dict[str, int]:
        with self._lock:
            try:
                return {
                    table: self._conn.execute(f'SELECT count(*) FROM "{table}"').fetchone()[0]
                    for table in TABLES
                }
            except sqlite3.Error as exc:
                raise StorageError(f"could not count rows: {exc}") from exc

    def close(self) -> None:
        with self._lock:
            self._conn.close()


__all__ = ["PersistResult", "SCHEMAS", "Store", "TABLES", "group_rows"]
