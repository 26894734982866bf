"""SQLite key-value store for durable wallet state.

A new connection is created per call (WAL mode, 30s busy timeout, Row
factory), so several editor processes sharing the same storage directory
have their writes serialised by SQLite itself. Calls are synchronous: the
save path that uses them is synchronous and infrequent.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any


class StateStore:
    """SQLite-backed get/set store for small JSON values."""

    def __init__(self, db_path: str | Path, logger: logging.Logger | None = None) -> None:
        self._db_path = str(db_path)
        self._logger = logger or logging.getLogger("dopamine.store")

    def _get_connection(self) -> sqlite3.Connection:
        """Create a new SQLite connection with standard settings."""
        conn = sqlite3.connect(self._db_path, timeout=30)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=30000")
        conn.row_factory = sqlite3.Row
        return conn

    # ══════════════════════════════════════════════════════════
    #  Initialization
    # ══════════════════════════════════════════════════════════

    def initialize(self) -> None:
        """Create the state table. Idempotent."""
        conn = self._get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()
        finally:
            conn.close()

    # ══════════════════════════════════════════════════════════
    #  Key-value access
    # ══════════════════════════════════════════════════════════

    def get(self, key: str, default: Any = None) -> Any:
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT value FROM state WHERE key = ?", (key,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            self._logger.warning("Unreadable value for state key %r, using default", key)
            return default

    def set(self, key: str, value: Any) -> None:
        conn = self._get_connection()
        try:
            conn.execute(
                "INSERT INTO state (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                "updated_at = CURRENT_TIMESTAMP",
                (key, json.dumps(value)),
            )
            conn.commit()
        finally:
            conn.close()
