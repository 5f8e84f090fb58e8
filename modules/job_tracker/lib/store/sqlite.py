from __future__ import annotations

import contextlib
import json
import os
import sqlite3
import uuid
from collections.abc import Iterable, Iterator, Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from ..logging_bridge import error as log_error
from ..utils import now_iso, to_iso
from .base import (
    EMPLOYERS,
    POSTINGS,
    Condition,
    DuplicateRecordError,
    RecordNotFoundError,
    Store,
    StoreError,
    check_collection,
)

_COLUMNS: dict[str, tuple[str, ...]] = {
    EMPLOYERS: (
        "id",
        "name",
        "slug",
        "career_page_url",
        "industry",
        "headquarters",
        "status",
        "created",
        "updated",
    ),
    POSTINGS: (
        "id",
        "identity_key",
        "employer",
        "title",
        "department",
        "location",
        "employment_type",
        "seniority",
        "description",
        "application_url",
        "status",
        "first_seen_at",
        "last_seen_at",
        "days_posted",
        "salary_min",
        "salary_max",
        "requirements",
        "benefits",
        "created",
        "updated",
    ),
}

# Stored as JSON text, surfaced as lists.
_JSON_COLUMNS = {"requirements", "benefits"}


class SqliteStore(Store):
    """
    Single-file local catalog with the same collections and semantics as the
    PocketBase backend. One connection per call; safe to use from worker threads.
    """

    def __init__(self, sqlite_path: str):
        self.sqlite_path = sqlite_path
        init_db(sqlite_path)

    # ---- Store API ----------------------------------------------------------

    def list(
        self,
        collection: str,
        conditions: Iterable[Condition] = (),
        *,
        limit: int | None = None,
        sort: str | None = None,
    ) -> list[dict[str, Any]]:
        cols = _COLUMNS[check_collection(collection)]
        where, params = _render_where(cols, conditions)
        sql = f"SELECT * FROM {collection}{where}"
        if sort:
            desc = sort.startswith("-")
            field = sort.lstrip("-+")
            _check_field(cols, field)
            sql += f" ORDER BY {field} {'DESC' if desc else 'ASC'}"
        else:
            sql += " ORDER BY rowid ASC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        with _connection(self.sqlite_path) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_decode_row(r) for r in rows]

    def create(self, collection: str, data: Mapping[str, Any]) -> dict[str, Any]:
        cols = _COLUMNS[check_collection(collection)]
        ts = now_iso()
        record = {k: v for k, v in data.items() if k in cols and k not in ("id", "created", "updated")}
        record.update({"id": uuid.uuid4().hex[:15], "created": ts, "updated": ts})
        names = list(record.keys())
        sql = f"INSERT INTO {collection} ({', '.join(names)}) VALUES ({', '.join('?' for _ in names)})"

        try:
            with _connection(self.sqlite_path) as conn:
                conn.execute(sql, [_encode(k, record[k]) for k in names])
                row = conn.execute(f"SELECT * FROM {collection} WHERE id = ?", (record["id"],)).fetchone()
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e).upper():
                raise DuplicateRecordError(f"{collection}: {e}") from e
            raise StoreError(f"{collection}: {e}") from e
        except sqlite3.Error as e:
            log_error({
                "component": "job_tracker.store.sqlite",
                "op": "create",
                "collection": collection,
                "sqlite_path": self.sqlite_path,
                "error": repr(e),
            })
            raise StoreError(f"{collection}: {e}") from e
        return _decode_row(row)

    def update(self, collection: str, record_id: str, data: Mapping[str, Any]) -> dict[str, Any]:
        cols = _COLUMNS[check_collection(collection)]
        changes = {k: v for k, v in data.items() if k in cols and k not in ("id", "created", "updated")}
        changes["updated"] = now_iso()
        assignments = ", ".join(f"{k} = ?" for k in changes)
        params = [_encode(k, v) for k, v in changes.items()] + [record_id]

        try:
            with _connection(self.sqlite_path) as conn:
                cur = conn.execute(f"UPDATE {collection} SET {assignments} WHERE id = ?", params)
                if cur.rowcount == 0:
                    raise RecordNotFoundError(f"{collection}/{record_id} not found")
                row = conn.execute(f"SELECT * FROM {collection} WHERE id = ?", (record_id,)).fetchone()
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError(f"{collection}: {e}") from e
        except sqlite3.Error as e:
            raise StoreError(f"{collection}: {e}") from e
        return _decode_row(row)


# ---- Diagnostics / fixtures -----------------------------------------------


def init_db(sqlite_path: str) -> None:
    """
    Ensure the SQLite database and schema exist.
    Safe to call multiple times.
    """
    _ensure_dir(sqlite_path)
    with _connection(sqlite_path) as conn:
        _ensure_schema(conn)


def count_rows(sqlite_path: str, collection: str = POSTINGS) -> int:
    """Return total rows in a collection; 0 if DB missing/empty."""
    if not os.path.exists(sqlite_path):
        return 0
    check_collection(collection)
    with _connection(sqlite_path) as conn:
        _ensure_schema(conn)
        (n,) = conn.execute(f"SELECT COUNT(*) FROM {collection}").fetchone()
    return int(n or 0)


def reset_db(sqlite_path: str) -> None:
    """
    Remove the DB file entirely (for pytest fixtures).
    Safe if it doesn't exist.
    """
    for suffix in ("", "-wal", "-shm"):
        with contextlib.suppress(FileNotFoundError):
            os.remove(sqlite_path + suffix)


# ---- Internal utilities -----------------------------------------------------


def _ensure_dir(sqlite_path: str) -> None:
    d = os.path.dirname(os.path.abspath(sqlite_path)) or "."
    os.makedirs(d, exist_ok=True)


@contextlib.contextmanager
def _connection(sqlite_path: str) -> Iterator[sqlite3.Connection]:
    # isolation_level=None gives autocommit mode; each statement commits on its own.
    conn = sqlite3.connect(sqlite_path, timeout=30.0, isolation_level=None)
    conn.row_factory = sqlite3.Row
    try:
        _apply_pragmas(conn)
        yield conn
    finally:
        conn.close()


def _apply_pragmas(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    conn.execute("PRAGMA temp_store=MEMORY;")
    conn.execute("PRAGMA cache_size=-8000;")  # approx 8MB cache


def _ensure_schema(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS employers (
          id TEXT PRIMARY KEY,
          name TEXT NOT NULL,
          slug TEXT,
          career_page_url TEXT,
          industry TEXT,
          headquarters TEXT,
          status TEXT NOT NULL DEFAULT 'active',
          created TEXT NOT NULL,
          updated TEXT NOT NULL
        );
        """
    )
    conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS ux_employers_name ON employers (name);")
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS postings (
          id TEXT PRIMARY KEY,
          identity_key TEXT NOT NULL,
          employer TEXT NOT NULL REFERENCES employers(id),
          title TEXT NOT NULL,
          department TEXT,
          location TEXT,
          employment_type TEXT,
          seniority TEXT,
          description TEXT,
          application_url TEXT,
          status TEXT NOT NULL DEFAULT 'active',
          first_seen_at TEXT NOT NULL,
          last_seen_at TEXT NOT NULL,
          days_posted INTEGER NOT NULL DEFAULT 0,
          salary_min INTEGER,
          salary_max INTEGER,
          requirements TEXT NOT NULL DEFAULT '[]',
          benefits TEXT NOT NULL DEFAULT '[]',
          created TEXT NOT NULL,
          updated TEXT NOT NULL
        );
        """
    )
    conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS ux_postings_identity ON postings (identity_key);")
    conn.execute("CREATE INDEX IF NOT EXISTS ix_postings_status_seen ON postings (status, last_seen_at);")


def _check_field(cols: tuple[str, ...], field: str) -> None:
    if field not in cols:
        raise StoreError(f"Unknown field {field!r}")


def _render_where(cols: tuple[str, ...], conditions: Iterable[Condition]) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    for c in conditions:
        _check_field(cols, c.field)
        clauses.append(f"{c.field} {c.op} ?")
        params.append(_encode(c.field, c.value))
    return ((" WHERE " + " AND ".join(clauses)) if clauses else "", params)


def _encode(field: str, value: Any) -> Any:
    if field in _JSON_COLUMNS:
        return json.dumps(list(value or []), ensure_ascii=False)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_iso(value)
    return value


def _decode_row(row: sqlite3.Row) -> dict[str, Any]:
    out = dict(row)
    for k in _JSON_COLUMNS & out.keys():
        try:
            out[k] = json.loads(out[k] or "[]")
        except ValueError:
            out[k] = []
    return out
