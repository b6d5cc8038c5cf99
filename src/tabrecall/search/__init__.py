"""Session discovery: similarity ranking, text matching and reranking."""

from tabrecall.search.orchestrator import SearchResult, search_sessions
from tabrecall.search.rerank import RelevanceReranker, RerankResult, parse_index_array
from tabrecall.search.similarity import (
    ScoredSession,
    cosine_similarity,
    rank_by_similarity,
    sensitivity_to_threshold,
)
from tabrecall.search.text_match import match_sessions

__all__ = [
    "RelevanceReranker",
    "RerankResult",
    "ScoredSession",
    "SearchResult",
    "cosine_similarity",
    "match_sessions",
    "parse_index_array",
    "rank_by_similarity",
    "search_sessions",
    "sensitivity_to_threshold",
]
