# src/taskmaster/storage/kv_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from pathlib import Path

logger = logging.getLogger(__name__)


class SqliteKeyValueStore:
    """
    SQLite key-value store.

    One row per key; values are opaque strings (JSON produced by TaskStore).
    The schema is created if missing.

    Thread-safety:
    - each method opens its own SQLite connection
    - set() commits before returning, so a write survives a crash right after the call
    """

    def __init__(self, db_path: str | Path = "taskmaster.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_keys()
        except Exception:
            total = -1
        logger.info("KeyValueStore ready db=%s keys=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def count_keys(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM kv").fetchone()
            return int(n)
        finally:
            conn.close()

    def get(self, key: str) -> str | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return str(row["value"]) if row else None
        finally:
            conn.close()

    def set(self, key: str, value: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO kv(key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, time.time()),
            )
            conn.commit()
            logger.debug("kv set key=%s bytes=%d", key, len(value))
        finally:
            conn.close()


class MemoryKeyValueStore:
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def close(self) -> None:
        return
