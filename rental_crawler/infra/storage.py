"""SQLite-backed listing store."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Mapping

from ..errors import DuplicateListingError, StoreError
from ..records import LISTING_FIELDS, Listing

SCHEMA = """
CREATE TABLE IF NOT EXISTS listings (
    record_id INTEGER PRIMARY KEY AUTOINCREMENT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT,
    external_id TEXT NOT NULL DEFAULT '',
    link TEXT NOT NULL DEFAULT '',
    title TEXT NOT NULL DEFAULT '',
    property_type TEXT NOT NULL DEFAULT '',
    layout TEXT NOT NULL DEFAULT '',
    size TEXT NOT NULL DEFAULT '',
    floor TEXT NOT NULL DEFAULT '',
    area TEXT NOT NULL DEFAULT '',
    address TEXT NOT NULL DEFAULT '',
    price TEXT NOT NULL DEFAULT ''
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_listings_live_external_id
    ON listings(external_id) WHERE deleted_at IS NULL;

CREATE INDEX IF NOT EXISTS idx_listings_identity
    ON listings(property_type, layout, floor, area, address);
"""

_QUERYABLE = frozenset(LISTING_FIELDS) | {"record_id"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _row_to_listing(row: sqlite3.Row) -> Listing:
    return Listing(**{key: row[key] for key in row.keys()})


class SQLiteManager:
    """Manage SQLite connections with basic schema guarantees."""

    def __init__(self) -> None:
        self._connections: Dict[Path, sqlite3.Connection] = {}
        self._lock = Lock()

    def connect(self, path: Path) -> sqlite3.Connection:
        with self._lock:
            if path not in self._connections:
                try:
                    path.parent.mkdir(parents=True, exist_ok=True)
                    conn = sqlite3.connect(path, check_same_thread=False)
                    conn.row_factory = sqlite3.Row
                    self._ensure_schema(conn)
                except (OSError, sqlite3.Error) as exc:
                    raise StoreError(f"Cannot open listing store {path}: {exc}") from exc
                self._connections[path] = conn
            return self._connections[path]

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(SCHEMA)
        conn.commit()

    def close(self, path: Path) -> None:
        with self._lock:
            conn = self._connections.pop(path, None)
        if conn is not None:
            conn.close()

    def reset(self, path: Path) -> None:
        self.close(path)
        if path.exists():
            path.unlink()

    def close_all(self) -> None:
        with self._lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()


class ListingStore:
    """Insert, look up and delete listing rows.

    Lookups ignore soft-deleted rows. At most one live row may carry a given
    ``external_id``; a second insert raises ``DuplicateListingError``.
    """

    def __init__(self, manager: SQLiteManager, path: Path) -> None:
        self.manager = manager
        self.path = path
        self._lock = Lock()
        self._conn = self.manager.connect(path)

    def insert(self, listing: Listing) -> Listing:
        with self._lock:
            try:
                stored = self._insert(listing)
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise self._translate(exc) from exc
        return stored

    def find_one(
        self,
        equals: Mapping[str, Any] | None = None,
        not_equals: Mapping[str, Any] | None = None,
        include_deleted: bool = False,
    ) -> Listing | None:
        clauses: list[str] = []
        params: list[Any] = []
        for operator, conditions in (("=", equals or {}), ("!=", not_equals or {})):
            for column, value in conditions.items():
                if column not in _QUERYABLE:
                    raise ValueError(f"Unknown listing column: {column}")
                clauses.append(f"{column} {operator} ?")
                params.append(value)
        if not include_deleted:
            clauses.append("deleted_at IS NULL")
        where = " AND ".join(clauses) or "1 = 1"
        with self._lock:
            try:
                row = self._conn.execute(
                    f"SELECT * FROM listings WHERE {where} ORDER BY record_id LIMIT 1", params
                ).fetchone()
            except sqlite3.Error as exc:
                raise StoreError(f"Listing lookup failed: {exc}") from exc
        return _row_to_listing(row) if row is not None else None

    def hard_delete(self, listing: Listing) -> None:
        with self._lock:
            try:
                self._conn.execute("DELETE FROM listings WHERE record_id = ?", (listing.record_id,))
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise StoreError(f"Failed to delete listing {listing.record_id}: {exc}") from exc

    def soft_delete(self, listing: Listing) -> None:
        timestamp = _now()
        with self._lock:
            try:
                self._conn.execute(
                    "UPDATE listings SET deleted_at = ?, updated_at = ? "
                    "WHERE record_id = ? AND deleted_at IS NULL",
                    (timestamp, timestamp, listing.record_id),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise StoreError(f"Failed to delete listing {listing.record_id}: {exc}") from exc

    def replace(self, old: Listing, new: Listing) -> Listing:
        """Purge ``old`` and insert ``new`` in one transaction."""

        with self._lock:
            try:
                self._conn.execute("DELETE FROM listings WHERE record_id = ?", (old.record_id,))
                stored = self._insert(new)
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise self._translate(exc) from exc
        return stored

    def count(self, include_deleted: bool = False) -> int:
        query = "SELECT count(*) FROM listings"
        if not include_deleted:
            query += " WHERE deleted_at IS NULL"
        with self._lock:
            return int(self._conn.execute(query).fetchone()[0])

    def list_recent(self, limit: int = 20) -> list[Listing]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM listings WHERE deleted_at IS NULL "
                "ORDER BY record_id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [_row_to_listing(row) for row in rows]

    def close(self) -> None:
        self.manager.close(self.path)

    # ------------------------------------------------------------------
    def _insert(self, listing: Listing) -> Listing:
        timestamp = _now()
        values = listing.fields()
        columns = ", ".join((*values.keys(), "created_at", "updated_at"))
        placeholders = ", ".join("?" for _ in range(len(values) + 2))
        cursor = self._conn.execute(
            f"INSERT INTO listings({columns}) VALUES ({placeholders})",
            (*values.values(), timestamp, timestamp),
        )
        return listing.as_stored(int(cursor.lastrowid), timestamp)

    @staticmethod
    def _translate(exc: sqlite3.Error) -> StoreError:
        if isinstance(exc, sqlite3.IntegrityError):
            return DuplicateListingError(str(exc))
        return StoreError(str(exc))


__all__ = ["ListingStore", "SCHEMA", "SQLiteManager"]
