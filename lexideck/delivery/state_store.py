"""
SQLite State Store for LexiDeck.

Durable key-value persistence for the word store. Every record is a JSON
document under a namespaced key:

- <ns>:state              full snapshot (mastery, filters, caches, queue, config)
- <ns>:custom-words       learner-added words only
- <ns>:word-notes         {word_id: note}
- <ns>:word-last-updated  {word_id: iso timestamp}

Database location: ~/.lexideck/state.db
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

from loguru import logger

# =============================================================================
# Protocol
# =============================================================================


class KeyValueStore(Protocol):
    """Durable string store surviving restarts."""

    def read_key(self, name: str) -> str | None: ...

    def write_key(self, name: str, value: str) -> None: ...

    def delete_key(self, name: str) -> None: ...


# =============================================================================
# In-memory Store
# =============================================================================


class MemoryKeyValueStore:
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def read_key(self, name: str) -> str | None:
        return self.data.get(name)

    def write_key(self, name: str, value: str) -> None:
        self.data[name] = value

    def delete_key(self, name: str) -> None:
        self.data.pop(name, None)


# =============================================================================
# SQLite Store
# =============================================================================


class SqliteKeyValueStore:
    """
    SQLite-backed key-value persistence.

    Writes commit immediately, so a mutation is durable as soon as
    write_key returns.
    """

    DEFAULT_DB_PATH = Path.home() / ".lexideck" / "state.db"

    def __init__(self, db_path: Path | None = None):
        """
        Initialize the state store.

        Args:
            db_path: Custom database path (defaults to ~/.lexideck/state.db)
        """
        self.db_path = db_path or self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._init_schema()

        logger.debug(f"SqliteKeyValueStore initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_schema(self) -> None:
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP
            )
        """)
        self.conn.commit()

    def read_key(self, name: str) -> str | None:
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM kv_store WHERE key = ?", (name,))
        row = cursor.fetchone()
        return None if row is None else row["value"]

    def write_key(self, name: str, value: str) -> None:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
        """,
            (name, value, datetime.now().isoformat()),
        )
        self.conn.commit()

    def delete_key(self, name: str) -> None:
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM kv_store WHERE key = ?", (name,))
        self.conn.commit()

    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys, optionally restricted to a namespace prefix."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT key FROM kv_store WHERE key LIKE ? ORDER BY key",
            (f"{prefix}%",),
        )
        return [row["key"] for row in cursor.fetchall()]

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None


# =============================================================================
# Key Layout
# =============================================================================


@dataclass(frozen=True)
class StorageKeys:
    """Namespaced record names used by the word store."""

    namespace: str = "lexideck"

    @property
    def state(self) -> str:
        return f"{self.namespace}:state"

    @property
    def custom_words(self) -> str:
        return f"{self.namespace}:custom-words"

    @property
    def notes(self) -> str:
        return f"{self.namespace}:word-notes"

    @property
    def last_updated(self) -> str:
        return f"{self.namespace}:word-last-updated"
