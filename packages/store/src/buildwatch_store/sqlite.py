"""SQLiteBackend — local file-based store for long histories and CI caching.

Why SQLite as the alternative local store:
- Batteries included: ships with Python, no extra dependencies.
- Per-key writes: saving the dark-mode flag does not rewrite the build
  history, unlike the single-object JSON file.
- Can also serve as a CI cache (write to a path shared between jobs).

Schema:
  kv  — one row per persisted key, the value JSON-encoded.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any

from buildwatch_store.base import BaseBackend

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class SQLiteBackend(BaseBackend):
    """Stores each key as a JSON-encoded row in a local SQLite database file.

    The database file path defaults to `.buildwatch.db` in the current working
    directory. Configure via .buildwatch.yml: `store: sqlite` and
    `store_path: /path/to/buildwatch.db`.
    """

    def __init__(self, db_path: str = ".buildwatch.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def load(self, key: str) -> Any | None:
        row = self._conn.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            logger.warning("Discarding unreadable value for key %r: %s", key, e)
            return None

    def save(self, key: str, value: Any) -> None:
        self._conn.execute(
            """
            INSERT INTO kv (key, value, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
            """,
            (key, json.dumps(value)),
        )
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()
