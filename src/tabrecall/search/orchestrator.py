"""Tiered session search: embeddings, then text, then model reranking."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tabrecall.config import SEARCH_RESULT_LIMIT
from tabrecall.core.exceptions import TabRecallError
from tabrecall.providers import (
    LanguageModelProvider,
    ProviderFactory,
    build_provider,
    supports_embeddings,
)
from tabrecall.search.rerank import RelevanceReranker
from tabrecall.search.similarity import rank_by_similarity, sensitivity_to_threshold
from tabrecall.search.text_match import match_sessions
from tabrecall.settings import Settings
from tabrecall.storage.interface import Session
from tabrecall.storage.sessions import SessionRepository
from tabrecall.storage.vector_store import VectorStore

logger = logging.getLogger(__name__)

METHOD_NONE = "none"
METHOD_EMBEDDING = "embedding"
METHOD_TEXT = "text"
METHOD_AI_RANKED = "ai-ranked"


@dataclass
class SearchResult:
    results: List[Session] = field(default_factory=list)
    method: str = METHOD_NONE
    scores: Dict[str, float] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


def _scores_for(sessions: List[Session], scores: Dict[str, float]) -> Dict[str, float]:
    return {s.id: scores[s.id] for s in sessions if s.id in scores}


def _embedding_candidates(
    query: str,
    provider: LanguageModelProvider,
    sessions: List[Session],
    vector_store: VectorStore,
    settings: Settings,
) -> tuple[List[Session], Dict[str, float]]:
    query_vector = provider.embed(query)
    threshold = sensitivity_to_threshold(settings.search_sensitivity)
    scored = rank_by_similarity(query_vector, vector_store.get_all(), sessions, threshold)
    logger.info(f"Embedding search found {len(scored)} results (threshold {threshold:.1f})")
    return (
        [item.session for item in scored],
        {item.session.id: item.similarity for item in scored},
    )


def search_sessions(
    query: str,
    *,
    repository: SessionRepository,
    vector_store: VectorStore,
    settings: Settings,
    provider_factory: ProviderFactory = build_provider,
    limit: int = SEARCH_RESULT_LIMIT,
) -> SearchResult:
    """Find sessions matching ``query``.

    Tiers run in a fixed order: similarity search over stored vectors, then
    substring matching when that produced nothing, then model reranking when
    enabled. A non-empty reranked result wins outright; otherwise the
    candidates from the earlier tiers are returned, capped at ``limit``.

    Raises:
        ConfigurationError: settings are invalid; raised before any tier runs.
    """
    sessions = repository.list_sessions()
    query = (query or "").strip()
    if not sessions or not query:
        return SearchResult()

    settings.validate()
    with_context = [session for session in sessions if session.context]
    logger.info(
        f"Searching {len(sessions)} sessions ({len(with_context)} with context) for '{query}'"
    )

    provider: Optional[LanguageModelProvider] = None
    if settings.has_credentials:
        provider = provider_factory(settings)

    result = SearchResult(method=METHOD_TEXT)
    candidates: List[Session] = []

    if supports_embeddings(provider) and with_context:
        try:
            candidates, scores = _embedding_candidates(
                query, provider, sessions, vector_store, settings
            )
            result.method = METHOD_EMBEDDING
            result.scores = scores
        except (TabRecallError, ValueError) as exc:
            logger.warning(f"Embedding search failed, falling back to text: {exc}")
            result.warnings.append(f"Embedding search unavailable: {exc}")

    if not candidates:
        candidates = match_sessions(query, sessions)
        result.method = METHOD_TEXT
        result.scores = {}
        logger.info(f"Text search found {len(candidates)} results")

    if settings.ai_ranking and provider is not None and with_context:
        # Without any candidate, give the model every summarized session so it
        # can surface matches that share no keywords with the query.
        pool = candidates if candidates else with_context
        reranked = RelevanceReranker(provider).rerank(query, pool)
        if reranked.warning:
            result.warnings.append(reranked.warning)
        if reranked.sessions:
            return SearchResult(
                results=reranked.sessions,
                method=METHOD_AI_RANKED,
                scores=_scores_for(reranked.sessions, result.scores),
                warnings=result.warnings,
            )

    result.results = candidates[:limit]
    result.scores = _scores_for(result.results, result.scores)
    return result
