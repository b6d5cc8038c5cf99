"""End-to-end tests for tiered session search."""

from unittest.mock import patch

import pytest

from tabrecall.core.exceptions import ConfigurationError, StorageError, UpstreamError
from tabrecall.search import search_sessions
from tabrecall.settings import Settings


def _search(query, repository, vector_store, settings, provider=None, **kwargs):
    def factory(_settings):
        if provider is None:
            raise AssertionError("provider should not be built")
        return provider

    return search_sessions(
        query,
        repository=repository,
        vector_store=vector_store,
        settings=settings,
        provider_factory=factory,
        **kwargs,
    )


def test_no_sessions_returns_none_method(repository, vector_store):
    result = _search("anything", repository, vector_store, Settings())

    assert result.results == []
    assert result.method == "none"


def test_blank_query_returns_none_method(repository, vector_store, make_session):
    repository.add_session(make_session(name="Work"))

    result = _search("   ", repository, vector_store, Settings())

    assert result.results == []
    assert result.method == "none"


def test_text_search_without_embeddings(repository, vector_store, make_session):
    session = repository.add_session(
        make_session(name="CSE 333", context="homework on sorting algorithms")
    )

    result = _search("sorting", repository, vector_store, Settings(search_sensitivity=7))

    assert result.method == "text"
    assert [s.id for s in result.results] == [session.id]


def test_embedding_search_applies_threshold(repository, vector_store, make_session, embedding_provider):
    first = repository.add_session(make_session(name="First", context="Summary one"))
    second = repository.add_session(make_session(name="Second", context="Summary two"))
    vector_store.put(first.id, [1.0, 0.0])
    vector_store.put(second.id, [0.0, 1.0])
    provider = embedding_provider([], embed=lambda text: [1.0, 0.0])
    settings = Settings(provider="openai", api_key="key", search_sensitivity=7)

    result = _search("anything", repository, vector_store, settings, provider)

    assert result.method == "embedding"
    assert [s.id for s in result.results] == [first.id]
    assert result.scores[first.id] == pytest.approx(1.0)
    assert provider.embedded == ["anything"]


def test_rerank_receives_all_summarized_sessions_when_text_finds_nothing(
    repository, vector_store, make_session, scripted_provider
):
    first = repository.add_session(make_session(name="Taxes", context="Filing forms"))
    second = repository.add_session(make_session(name="Trip", context="Booking flights"))
    repository.add_session(make_session(name="Bare"))
    provider = scripted_provider(["[1, 2]"])
    settings = Settings(api_key="key", ai_ranking=True)

    result = _search("vacation", repository, vector_store, settings, provider)

    assert result.method == "ai-ranked"
    # Newest first: "Trip" was stored after "Taxes".
    assert [s.id for s in result.results] == [second.id, first.id]
    prompt = provider.prompts[0]
    assert "Taxes" in prompt and "Trip" in prompt
    assert "Bare" not in prompt


def test_rerank_reorders_text_candidates(repository, vector_store, make_session, scripted_provider):
    a = repository.add_session(make_session(name="Python notes", context="Decorators"))
    b = repository.add_session(make_session(name="Python jobs", context="Applications"))
    repository.add_session(make_session(name="Cooking", context="Pasta"))
    provider = scripted_provider(["[2]"])

    result = _search(
        "python", repository, vector_store, Settings(api_key="key", ai_ranking=True), provider
    )

    assert result.method == "ai-ranked"
    # Candidates are [b, a] in stored order; the model picked the second.
    assert [s.id for s in result.results] == [a.id]
    assert "Cooking" not in provider.prompts[0]


def test_rerank_failure_falls_back_with_warning(repository, vector_store, make_session, scripted_provider):
    sessions = [
        repository.add_session(make_session(name=f"Project {i}", context=f"Work {i}"))
        for i in range(5)
    ]
    provider = scripted_provider(["no idea"])

    result = _search(
        "project", repository, vector_store, Settings(api_key="key", ai_ranking=True), provider
    )

    assert result.method == "ai-ranked"
    assert [s.id for s in result.results] == [s.id for s in reversed(sessions)][:3]
    assert result.warnings


def test_ai_ranking_disabled_does_not_call_model(repository, vector_store, make_session, scripted_provider):
    session = repository.add_session(make_session(name="Notes", context="Summary"))
    provider = scripted_provider([])

    result = _search("notes", repository, vector_store, Settings(api_key="key"), provider)

    assert result.method == "text"
    assert [s.id for s in result.results] == [session.id]
    assert provider.prompts == []


def test_embedding_failure_falls_back_to_text(repository, vector_store, make_session, embedding_provider):
    session = repository.add_session(make_session(name="Budget", context="Spreadsheets"))
    vector_store.put(session.id, [1.0, 0.0])
    provider = embedding_provider([], embed=lambda text: UpstreamError("embedding down"))
    settings = Settings(provider="openai", api_key="key")

    result = _search("budget", repository, vector_store, settings, provider)

    assert result.method == "text"
    assert [s.id for s in result.results] == [session.id]
    assert any("embedding down" in w for w in result.warnings)


def test_embedding_without_matches_falls_back_to_text(repository, vector_store, make_session, embedding_provider):
    session = repository.add_session(make_session(name="Garden", context="Planting tomatoes"))
    vector_store.put(session.id, [0.0, 1.0])
    provider = embedding_provider([], embed=lambda text: [1.0, 0.0])
    settings = Settings(provider="openai", api_key="key", search_sensitivity=7)

    result = _search("garden", repository, vector_store, settings, provider)

    assert result.method == "text"
    assert [s.id for s in result.results] == [session.id]


def test_results_truncated_to_limit(repository, vector_store, make_session):
    for i in range(15):
        repository.add_session(make_session(name=f"Reading list {i}"))

    result = _search("reading", repository, vector_store, Settings())

    assert result.method == "text"
    assert len(result.results) == 10


def test_missing_credentials_skip_model_tiers(repository, vector_store, make_session):
    session = repository.add_session(make_session(name="Recipes", context="Soup"))

    result = _search("soup", repository, vector_store, Settings(ai_ranking=True))

    assert result.method == "text"
    assert [s.id for s in result.results] == [session.id]


def test_invalid_sensitivity_raises_before_search(repository, vector_store, make_session):
    repository.add_session(make_session(name="Work"))

    with pytest.raises(ConfigurationError, match="searchSensitivity"):
        _search("work", repository, vector_store, Settings(search_sensitivity=11))


def test_vector_store_outage_falls_back_to_text(repository, vector_store, make_session, embedding_provider):
    session = repository.add_session(make_session(name="Budget", context="Spreadsheets"))
    provider = embedding_provider([], embed=lambda text: [1.0, 0.0])
    settings = Settings(provider="openai", api_key="key")

    with patch.object(vector_store, "get_all", side_effect=StorageError("vector db down")):
        result = _search("budget", repository, vector_store, settings, provider)

    assert result.method == "text"
    assert [s.id for s in result.results] == [session.id]
    assert any("vector db down" in w for w in result.warnings)
