"""Durable key-value storage with a SQLite backend."""

import contextlib
import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional

from tabrecall.core.exceptions import StorageError

MAX_KEY_LENGTH = 256
MAX_VALUE_SIZE_BYTES = 32 * 1024 * 1024  # whole session collections live in one value


@contextlib.contextmanager
def sqlite_connection(db_path: Path) -> Iterator[sqlite3.Connection]:
    """Open a connection, commit on success, and report storage failures."""
    try:
        conn = sqlite3.connect(db_path, check_same_thread=False)
    except sqlite3.Error as exc:
        raise StorageError(f"Cannot open database at {db_path}: {exc}") from exc
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        raise StorageError(f"Storage operation failed: {exc}") from exc
    finally:
        conn.close()


class KVStore:
    """
    JSON key-value storage scoped to a namespace and persisted in SQLite.

    Used for the session collection and the user settings. Every ``set``
    replaces the whole value in a single transaction, so readers never see a
    partially written value.
    """

    def __init__(self, namespace: str, db_path: Optional[Path] = None):
        """
        Initialize a store for one namespace.

        Args:
            namespace: Prefix isolating this store's keys from other users of the DB
            db_path: Optional custom database path (defaults to the configured DB)
        """
        if not namespace or not namespace.strip():
            raise ValueError("namespace cannot be empty")

        if db_path is None:
            from tabrecall.config import DB_PATH

            db_path = DB_PATH

        self.namespace = namespace.strip()
        self.db_path = Path(db_path)
        self._ensure_table()

    def _ensure_table(self) -> None:
        """Create the kvstore table if it doesn't exist."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create database directory: {exc}") from exc
        with sqlite_connection(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kvstore (
                    namespace TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (namespace, key)
                )
                """
            )

    def _validate_key(self, key: str) -> None:
        if not key or not key.strip():
            raise ValueError("Key cannot be empty")
        if len(key) > MAX_KEY_LENGTH:
            raise ValueError(
                f"Key length ({len(key)}) exceeds maximum ({MAX_KEY_LENGTH})"
            )

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for ``key`` or ``default`` when absent."""
        self._validate_key(key)
        with sqlite_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT value FROM kvstore WHERE namespace = ? AND key = ?",
                (self.namespace, key),
            ).fetchone()
        if row is None:
            return default
        return json.loads(row[0])

    def set(self, key: str, value: Any) -> None:
        """
        Set value for key. Value must be JSON-serializable.

        Raises:
            ValueError: If key is invalid or value exceeds size limit
            TypeError: If value cannot be serialized to JSON
        """
        self._validate_key(key)
        serialized = json.dumps(value)
        if len(serialized.encode("utf-8")) > MAX_VALUE_SIZE_BYTES:
            raise ValueError(
                f"Value size exceeds maximum ({MAX_VALUE_SIZE_BYTES} bytes)"
            )

        now = datetime.now().isoformat()
        with sqlite_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO kvstore (namespace, key, value, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(namespace, key) DO UPDATE
                SET value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (self.namespace, key, serialized, now, now),
            )

    def delete(self, key: str) -> bool:
        """Delete key. Returns True if key existed."""
        self._validate_key(key)
        with sqlite_connection(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM kvstore WHERE namespace = ? AND key = ?",
                (self.namespace, key),
            )
            return cursor.rowcount > 0
