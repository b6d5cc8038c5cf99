"""Tests for the per-session embedding store."""

import sqlite3

import pytest

from tabrecall.storage.vector_store import (
    VectorStore,
    deserialize_embedding,
    serialize_embedding,
)


def test_serialize_embedding_uses_float32():
    data = serialize_embedding([0.5, -1.0, 2.0])
    assert len(data) == 12
    assert deserialize_embedding(data) == [0.5, -1.0, 2.0]
    assert deserialize_embedding(b"") == []


def test_init_creates_table(vector_store):
    conn = sqlite3.connect(vector_store.db_path)
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='session_embeddings'"
    ).fetchone()
    conn.close()
    assert row is not None


def test_put_then_get(vector_store):
    vector_store.put("s1", [1.0, 0.0, 0.5], embedding_model="test-embedding")

    assert vector_store.get("s1") == [1.0, 0.0, 0.5]
    assert vector_store.get("missing") is None


def test_put_replaces_existing_record(vector_store):
    vector_store.put("s1", [1.0, 0.0])
    vector_store.put("s1", [0.0, 1.0, 0.0])

    records = vector_store.get_all()
    assert len(records) == 1
    assert records[0].vector == [0.0, 1.0, 0.0]
    assert records[0].dimensions == 3


def test_get_all_returns_records_with_metadata(vector_store):
    vector_store.put("s1", [1.0, 0.0], embedding_model="m1")
    vector_store.put("s2", [0.0, 1.0])

    records = {record.session_id: record for record in vector_store.get_all()}
    assert set(records) == {"s1", "s2"}
    assert records["s1"].embedding_model == "m1"
    assert records["s2"].embedding_model is None
    assert records["s1"].timestamp > 0


def test_empty_vector_rejected(vector_store):
    with pytest.raises(ValueError, match="empty embedding"):
        vector_store.put("s1", [])


def test_delete_and_clear(vector_store):
    vector_store.put("s1", [1.0])
    vector_store.put("s2", [1.0])
    vector_store.put("s3", [1.0])

    assert vector_store.delete("s1") is True
    assert vector_store.delete("s1") is False
    assert vector_store.clear() == 2
    assert vector_store.get_all() == []


def test_records_survive_new_instance(db_path):
    VectorStore(db_path=db_path).put("s1", [0.25, 0.75])

    assert VectorStore(db_path=db_path).get("s1") == [0.25, 0.75]
