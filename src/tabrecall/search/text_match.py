"""Substring fallback matching over session names and summaries."""

from typing import Iterable, List

from tabrecall.storage.interface import Session


def session_search_text(session: Session) -> str:
    return f"{session.name} {session.context or ''}".lower()


def match_sessions(query: str, sessions: Iterable[Session]) -> List[Session]:
    """Return sessions containing ``query`` (case-insensitive), in stored order."""
    needle = query.lower()
    return [session for session in sessions if needle in session_search_text(session)]
