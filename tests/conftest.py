import os
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from tabrecall.providers import EmbeddingCapable, LanguageModelProvider
from tabrecall.storage import (
    GenerationStatus,
    KVStore,
    Session,
    SessionRepository,
    Tab,
    TabGroup,
    VectorStore,
)


@pytest.fixture(autouse=True)
def mock_settings_env_vars(tmp_path_factory):
    """Automatically mock HOME and environment variables to ensure test isolation."""
    fake_home = tmp_path_factory.mktemp("fake_home")

    env = {"HOME": str(fake_home), "TABRECALL_DB_PATH": str(fake_home / "test.db")}
    with patch("pathlib.Path.home", return_value=fake_home):
        with patch.dict(os.environ, env):
            # Real credentials must never leak into tests.
            os.environ.pop("ANTHROPIC_API_KEY", None)
            os.environ.pop("OPENAI_API_KEY", None)
            yield


class ScriptedProvider(LanguageModelProvider):
    """Provider returning canned replies.

    ``replies`` is either a list consumed in order (an Exception item is
    raised instead of returned) or a callable mapping the prompt to a reply.
    """

    name = "scripted"

    def __init__(self, replies=None):
        super().__init__(api_key="test-key", model="test-model", config={})
        self._replies = replies if replies is not None else []
        self._lock = threading.Lock()
        self.prompts = []

    def complete(self, prompt, max_tokens=200):
        with self._lock:
            self.prompts.append(prompt)
            if callable(self._replies):
                reply = None
            elif self._replies:
                reply = self._replies.pop(0)
            else:
                raise AssertionError("ScriptedProvider ran out of replies")
        if reply is None:
            reply = self._replies(prompt)
        if isinstance(reply, Exception):
            raise reply
        return reply


class ScriptedEmbeddingProvider(ScriptedProvider, EmbeddingCapable):
    """Scripted provider that can also embed text."""

    embedding_model = "test-embedding"

    def __init__(self, replies=None, embed=None):
        super().__init__(replies)
        self._embed = embed or (lambda text: [1.0, 0.0])
        self.embedded = []

    def embed(self, text):
        self.embedded.append(text)
        result = self._embed(text)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def scripted_provider():
    return ScriptedProvider


@pytest.fixture
def embedding_provider():
    return ScriptedEmbeddingProvider


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "tabrecall_test.db"


@pytest.fixture
def kvstore(db_path: Path) -> KVStore:
    return KVStore("tabrecall", db_path=db_path)


@pytest.fixture
def repository(kvstore: KVStore) -> SessionRepository:
    return SessionRepository(kvstore)


@pytest.fixture
def vector_store(db_path: Path) -> VectorStore:
    return VectorStore(db_path=db_path)


@pytest.fixture
def make_session():
    """Factory for sessions with sensible defaults."""
    counter = {"n": 0}

    def _make(
        name="Session",
        context=None,
        session_id=None,
        urls=None,
        tab_groups=None,
        status=None,
        windows=None,
        window_indices=None,
    ):
        counter["n"] += 1
        urls = urls if urls is not None else ["https://example.com/a", "https://example.com/b"]
        indices = window_indices or [0] * len(urls)
        tabs = [
            Tab(url=url, title=f"Tab {i}", window_index=indices[i - 1])
            for i, url in enumerate(urls, start=1)
        ]
        return Session(
            id=session_id or f"session-{counter['n']}",
            name=name,
            tabs=tabs,
            windows=windows or [],
            timestamp=1_700_000_000_000 + counter["n"],
            context=context,
            tab_groups=[TabGroup(n, list(i)) for n, i in tab_groups] if tab_groups else None,
            generation_status=status or GenerationStatus.idle(),
        )

    return _make
