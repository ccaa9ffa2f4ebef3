"""String key-value storage backed by SQLite."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from ..errors import StorageWriteError
from .schema import ensure_schema

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Manages the kv_store table.

    Reads never raise: a failing read is logged and reported as absent.
    Writes raise StorageWriteError so the owner can decide how to degrade.
    """

    def __init__(self, db_path: str | Path = "~/.config/kachori/kachori.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def get(self, key: str) -> str | None:
        """Return the stored string for *key*, or None."""
        try:
            row = self._get_conn().execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        except (sqlite3.Error, OSError):
            logger.warning("Failed to read key %r from storage", key, exc_info=True)
            return None
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        """Insert or replace the value stored under *key*."""
        try:
            conn = self._get_conn()
            conn.execute(
                """INSERT INTO kv_store (key, value) VALUES (?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value,
                       updated_at = datetime('now', 'localtime')""",
                (key, value),
            )
            conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorageWriteError(f"Failed to write key {key!r}: {e}") from e

    def delete(self, key: str) -> None:
        """Remove *key* if present."""
        try:
            conn = self._get_conn()
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorageWriteError(f"Failed to delete key {key!r}: {e}") from e

