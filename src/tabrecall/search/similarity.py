"""Cosine similarity ranking of sessions against a query vector."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from tabrecall.storage.interface import EmbeddingRecord, Session

logger = logging.getLogger(__name__)
SENSITIVITY_SCALE = 10


@dataclass(frozen=True)
class ScoredSession:
    session: Session
    similarity: float


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> Optional[float]:
    """Compute cosine similarity, or None when it is undefined.

    Undefined covers empty vectors, mismatched lengths and zero norms.
    """
    if not a or not b or len(a) != len(b):
        return None

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return None
    return dot / (norm_a * norm_b)


def sensitivity_to_threshold(sensitivity: int) -> float:
    """Map the 1-10 sensitivity knob to a minimum similarity (10 -> 0.1, 1 -> 1.0)."""
    return (SENSITIVITY_SCALE + 1 - sensitivity) / SENSITIVITY_SCALE


def rank_by_similarity(
    query_vector: Sequence[float],
    records: Iterable[EmbeddingRecord],
    sessions: Iterable[Session],
    threshold: float,
) -> List[ScoredSession]:
    """Return sessions whose embedding clears ``threshold``, best first.

    Records with a different dimensionality than the query are ignored, and
    records whose session has been deleted are dropped. Equal scores keep the
    order in which records were supplied.
    """
    sessions_by_id: Dict[str, Session] = {session.id: session for session in sessions}
    expected_dims = len(query_vector)
    scored: List[ScoredSession] = []
    skipped_dims = 0

    for record in records:
        if len(record.vector) != expected_dims:
            skipped_dims += 1
            continue
        session = sessions_by_id.get(record.session_id)
        if session is None:
            continue
        similarity = cosine_similarity(query_vector, record.vector)
        if similarity is None or similarity < threshold:
            continue
        scored.append(ScoredSession(session=session, similarity=similarity))

    if skipped_dims:
        logger.warning(
            f"Ignored {skipped_dims} embedding(s) whose dimensionality differs "
            f"from the query vector ({expected_dims})"
        )

    # list.sort is stable, so ties keep input order.
    scored.sort(key=lambda item: item.similarity, reverse=True)
    return scored
