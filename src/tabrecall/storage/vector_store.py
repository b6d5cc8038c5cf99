"""SQLite-backed store of one embedding vector per session."""

from __future__ import annotations

import logging
import struct
import threading
import time
from pathlib import Path
from typing import List, Optional

from tabrecall.core.exceptions import StorageError
from tabrecall.storage.interface import EmbeddingRecord
from tabrecall.storage.kvstore import sqlite_connection

logger = logging.getLogger(__name__)
FLOAT_BYTES = 4


def serialize_embedding(embedding: List[float]) -> bytes:
    """Convert embedding to bytes for SQLite storage."""
    return struct.pack(f"{len(embedding)}f", *embedding)


def deserialize_embedding(data: bytes) -> List[float]:
    """Convert bytes back to embedding list."""
    if not data:
        return []
    count = len(data) // FLOAT_BYTES
    return list(struct.unpack(f"{count}f", data))


class VectorStore:
    """Durable map from session id to ``(vector, timestamp)``.

    Lives in its own table, independent of the session collection: a record
    may be missing for sessions enriched without an embedding-capable provider.
    """

    def __init__(self, db_path: Optional[Path] = None):
        if db_path is None:
            from tabrecall.config import DB_PATH

            db_path = DB_PATH
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self.init_db()

    def init_db(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create database directory: {exc}") from exc
        with sqlite_connection(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS session_embeddings (
                    session_id TEXT PRIMARY KEY,
                    embedding BLOB NOT NULL,
                    dimensions INTEGER NOT NULL,
                    embedding_model TEXT,
                    timestamp INTEGER NOT NULL
                )
                """
            )

    def put(
        self,
        session_id: str,
        vector: List[float],
        embedding_model: Optional[str] = None,
    ) -> None:
        """Store ``vector`` for ``session_id``, replacing any previous record."""
        if not vector:
            raise ValueError("Cannot store an empty embedding")
        timestamp = int(time.time() * 1000)
        with self._lock, sqlite_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO session_embeddings
                (session_id, embedding, dimensions, embedding_model, timestamp)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET
                    embedding = excluded.embedding,
                    dimensions = excluded.dimensions,
                    embedding_model = excluded.embedding_model,
                    timestamp = excluded.timestamp
                """,
                (
                    session_id,
                    serialize_embedding(vector),
                    len(vector),
                    embedding_model,
                    timestamp,
                ),
            )
        logger.debug(f"Stored {len(vector)}-dim embedding for session {session_id}")

    def get(self, session_id: str) -> Optional[List[float]]:
        with self._lock, sqlite_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT embedding FROM session_embeddings WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        return deserialize_embedding(row[0]) if row else None

    def get_all(self) -> List[EmbeddingRecord]:
        with self._lock, sqlite_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT session_id, embedding, timestamp, embedding_model
                FROM session_embeddings
                """
            ).fetchall()
        return [
            EmbeddingRecord(
                session_id=row[0],
                vector=deserialize_embedding(row[1]),
                timestamp=row[2],
                embedding_model=row[3],
            )
            for row in rows
        ]

    def delete(self, session_id: str) -> bool:
        """Remove one record. Returns True if it existed."""
        with self._lock, sqlite_connection(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM session_embeddings WHERE session_id = ?", (session_id,)
            )
            return cursor.rowcount > 0

    def clear(self) -> int:
        """Remove every record. Returns the number deleted."""
        with self._lock, sqlite_connection(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM session_embeddings")
            return cursor.rowcount
