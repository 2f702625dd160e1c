from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock
from typing import Optional

from .errors import PersistenceError


class LibraryStore:
    """SQLite-backed string store keyed by name, used for the offline library snapshot."""

    def __init__(self, path: Path) -> None:
        self.path = path
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            self._conn.commit()
        except (OSError, sqlite3.Error) as exc:
            raise PersistenceError(f"cannot open store at {path}: {exc}") from exc
        self._lock = Lock()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self._lock:
                cursor = self._conn.execute("SELECT value FROM storage WHERE key = ?", (key,))
                row = cursor.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"failed to read {key!r}: {exc}") from exc
        if not row:
            return None
        return row[0]

    def set_item(self, key: str, value: str) -> None:
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO storage(key, value, updated_at)
                    VALUES(?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                    """,
                    (key, value),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"failed to write {key!r}: {exc}") from exc

    def remove_item(self, key: str) -> bool:
        try:
            with self._lock:
                cursor = self._conn.execute("DELETE FROM storage WHERE key = ?", (key,))
                self._conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"failed to remove {key!r}: {exc}") from exc
        return cursor.rowcount > 0

    def updated_at(self, key: str) -> Optional[str]:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT updated_at FROM storage WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"failed to read {key!r}: {exc}") from exc
        return row[0] if row else None
