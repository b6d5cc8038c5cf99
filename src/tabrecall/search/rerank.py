"""Language-model reranking of candidate sessions."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from tabrecall.config import RERANK_SESSIONS_PROMPT, RERANK_TOP_N
from tabrecall.core.exceptions import ResponseParseError
from tabrecall.providers import LanguageModelProvider
from tabrecall.storage.interface import Session

logger = logging.getLogger(__name__)
INDEX_ARRAY_PATTERN = re.compile(r"\[[\d,\s]+\]")
RERANK_MAX_TOKENS = 100


@dataclass
class RerankResult:
    sessions: List[Session] = field(default_factory=list)
    warning: Optional[str] = None

    @property
    def fell_back(self) -> bool:
        return self.warning is not None


def parse_index_array(text: str) -> List[int]:
    """Extract the first bracketed list of integers from free text."""
    match = INDEX_ARRAY_PATTERN.search(text or "")
    if not match:
        raise ResponseParseError("No index array found in reranking reply")
    try:
        values = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ResponseParseError(f"Malformed index array: {match.group(0)}") from exc
    return [int(value) for value in values]


def format_candidate_list(candidates: Sequence[Session]) -> str:
    return "\n".join(
        f"{i}. {session.name} - {session.context}"
        for i, session in enumerate(candidates, start=1)
    )


class RelevanceReranker:
    """Ask a language model to pick and order the most relevant sessions.

    Failures never reach the caller: an unusable reply yields the first
    ``top_n`` candidates in their original order plus a warning.
    """

    def __init__(self, provider: LanguageModelProvider, top_n: int = RERANK_TOP_N):
        self.provider = provider
        self.top_n = top_n

    def build_prompt(self, query: str, candidates: Sequence[Session]) -> str:
        return RERANK_SESSIONS_PROMPT.format(
            query=query,
            session_list=format_candidate_list(candidates),
            top_n=self.top_n,
            count=len(candidates),
        )

    def rerank(self, query: str, candidates: Sequence[Session]) -> RerankResult:
        eligible = [session for session in candidates if session.context]
        if not eligible:
            return RerankResult()

        try:
            reply = self.provider.complete(
                self.build_prompt(query, eligible), max_tokens=RERANK_MAX_TOKENS
            )
            indices = parse_index_array(reply)
        except Exception as exc:
            warning = f"AI ranking failed, showing unranked matches: {exc}"
            logger.warning(warning)
            return RerankResult(sessions=list(eligible[: self.top_n]), warning=warning)

        ranked: List[Session] = []
        seen = set()
        for index in indices:
            if 1 <= index <= len(eligible) and index not in seen:
                seen.add(index)
                ranked.append(eligible[index - 1])
        logger.debug(f"Reranker kept {len(ranked)} of {len(indices)} returned indices")
        return RerankResult(sessions=ranked)
