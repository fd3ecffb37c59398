"""Local persistence of the timeline as a JSON document in a SQLite key-value slot."""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Sequence
from pathlib import Path

from timeline.constants import STORAGE_KEY
from timeline.exceptions import PersistenceError
from timeline.models import TimelineEntry
from timeline.normalizer import normalize_entry


def apply_sqlite_pragmas(conn: sqlite3.Connection) -> None:
    """Apply recommended PRAGMA tunings to an open SQLite connection.

    This centralizes the WAL and sync/temp_store settings so all code paths
    opening the DB get consistent behavior.
    """
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute("PRAGMA temp_store=MEMORY;")
    except sqlite3.DatabaseError:
        logging.exception("Failed to apply SQLite PRAGMA settings.")


def _create_schema(conn: sqlite3.Connection) -> None:
    apply_sqlite_pragmas(conn)
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS slots (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """
    )


def initialize_storage(db_path: Path) -> None:
    """Ensure the SQLite file and its key-value table exist."""
    db_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with sqlite3.connect(db_path) as conn:
            _create_schema(conn)
    except sqlite3.DatabaseError:
        logging.exception("Failed to initialize timeline database at %s", db_path)
        raise


class SlotStorage:
    """A single named slot holding the JSON array of entry records."""

    def __init__(self, db_path: Path, key: str = STORAGE_KEY) -> None:
        self.db_path = db_path
        self.key = key
        # 表结构只在第一次成功写入时创建
        self._schema_ready = False

    def read_raw(self) -> str | None:
        """Return the slot's text, or None when the file, table or slot is missing."""
        if not self.db_path.exists():
            return None
        try:
            with sqlite3.connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM slots WHERE key = ?", (self.key,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to read slot {self.key!r}") from exc
        return None if row is None else row[0]

    def write_raw(self, value: str) -> None:
        try:
            if not self._schema_ready:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with sqlite3.connect(self.db_path) as conn:
                if not self._schema_ready:
                    _create_schema(conn)
                conn.execute(
                    """
                    INSERT INTO slots (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value
                    """,
                    (self.key, value),
                )
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceError(f"Failed to write slot {self.key!r}") from exc
        self._schema_ready = True

    def load(self) -> list[TimelineEntry]:
        """Load entries from the slot. Empty, absent or malformed content yields []."""
        try:
            raw = self.read_raw()
        except PersistenceError:
            logging.exception("Failed to read timeline entries from %s", self.db_path)
            return []

        if not raw:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logging.exception("Stored timeline slot %r is not valid JSON.", self.key)
            return []

        if not isinstance(data, list):
            logging.warning(
                "Stored timeline slot %r is not a JSON array; ignoring it.", self.key
            )
            return []

        return [normalize_entry(record) for record in data]

    def save(self, entries: Sequence[TimelineEntry]) -> None:
        """Rewrite the slot with ``entries``; raises PersistenceError on failure."""
        payload = json.dumps([entry.to_dict() for entry in entries], ensure_ascii=False)
        self.write_raw(payload)
        logging.info("Persisted %d timeline entries to %s", len(entries), self.db_path)
