"""Persist the index to SQLite.

The database is a pure derived cache: delete it and run `quicknotes index`
to rebuild it from the note files at any time.

Schema:
    notes(filepath TEXT PRIMARY KEY, title TEXT NOT NULL, created_at TEXT NOT NULL)

created_at is stored as an ISO 8601 string with its UTC offset.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from quicknotes.index import Index
from quicknotes.models import IndexWarning, NoteRecord

logger = logging.getLogger("quicknotes.persist")

INDEX_DB_FILENAME = ".index.sqlite3"


def db_path_for(root: Path) -> Path:
    return root / INDEX_DB_FILENAME


def _get_conn(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def _ensure_schema(conn: sqlite3.Connection) -> None:
    # plain execute: executescript would commit an open transaction
    conn.execute("""
        CREATE TABLE IF NOT EXISTS notes (
            filepath TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
    """)


def _storable_path(path: Path) -> str | None:
    """path as stored in the filepath column, or None if it is not valid UTF-8."""
    raw = str(path)
    try:
        raw.encode("utf-8")
    except UnicodeEncodeError:
        return None
    return raw


def save_index(index: Index, db_path: Path) -> int:
    """Replace the persisted index with the contents of index. Returns the row count.

    Notes whose path is not valid UTF-8 are left out with a warning. The old
    contents stay in place if anything fails part way.
    """
    rows: list[tuple[str, str, str]] = []
    for r in index:
        filepath = _storable_path(r.path)
        if filepath is None:
            logger.warning("%s", IndexWarning(path=r.path, message="file name is not valid UTF-8; not saving it"))
            continue
        rows.append((filepath, r.title, r.created_at.isoformat()))

    conn = _get_conn(db_path)
    conn.isolation_level = None
    try:
        conn.execute("BEGIN")
        try:
            conn.execute("DROP TABLE IF EXISTS notes")
            _ensure_schema(conn)
            conn.executemany("INSERT INTO notes (filepath, title, created_at) VALUES (?, ?, ?)", rows)
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
    finally:
        conn.close()
    logger.info("saved %d notes to %s", len(rows), db_path)
    return len(rows)


def load_index(db_path: Path) -> Index:
    """Load the persisted index. Rows that cannot be decoded are skipped with a warning."""
    if not db_path.exists():
        return Index()

    conn = _get_conn(db_path)
    try:
        _ensure_schema(conn)
        rows = conn.execute("SELECT filepath, title, created_at FROM notes").fetchall()
    finally:
        conn.close()

    records: list[NoteRecord] = []
    warnings: list[IndexWarning] = []
    for raw_path, title, raw_created_at in rows:
        path = Path(raw_path)
        try:
            created_at = datetime.fromisoformat(raw_created_at)
        except (TypeError, ValueError):
            created_at = None
        if created_at is None or created_at.utcoffset() is None:
            warning = IndexWarning(path=path, message=f"invalid date {raw_created_at!r} in index; skipping entry")
            logger.warning("%s", warning)
            warnings.append(warning)
            continue
        records.append(NoteRecord(path=path, title=title, created_at=created_at))

    return Index.from_records(records, warnings)


def upsert_note(db_path: Path, record: NoteRecord) -> None:
    """Insert or update a single note (used after an edit)."""
    filepath = _storable_path(record.path)
    if filepath is None:
        logger.warning("%s", IndexWarning(path=record.path, message="file name is not valid UTF-8; not saving it"))
        return
    conn = _get_conn(db_path)
    try:
        with conn:
            _ensure_schema(conn)
            conn.execute(
                """INSERT INTO notes (filepath, title, created_at) VALUES (?, ?, ?)
                   ON CONFLICT(filepath) DO UPDATE SET
                       title = excluded.title,
                       created_at = excluded.created_at""",
                (filepath, record.title, record.created_at.isoformat()),
            )
    finally:
        conn.close()
    logger.debug("indexed %s", record.path)


def delete_note(db_path: Path, path: Path) -> None:
    filepath = _storable_path(path)
    if filepath is None:
        return
    conn = _get_conn(db_path)
    try:
        with conn:
            _ensure_schema(conn)
            conn.execute("DELETE FROM notes WHERE filepath = ?", (filepath,))
    finally:
        conn.close()
    logger.debug("removed %s from index", path)
