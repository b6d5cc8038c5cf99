"""Storage package for tabrecall."""

from tabrecall.storage.interface import (
    EmbeddingRecord,
    GenerationState,
    GenerationStatus,
    Session,
    Tab,
    TabGroup,
    WindowInfo,
)
from tabrecall.storage.kvstore import KVStore
from tabrecall.storage.sessions import SessionRepository
from tabrecall.storage.vector_store import VectorStore

__all__ = [
    "EmbeddingRecord",
    "GenerationState",
    "GenerationStatus",
    "KVStore",
    "Session",
    "SessionRepository",
    "Tab",
    "TabGroup",
    "VectorStore",
    "WindowInfo",
]
