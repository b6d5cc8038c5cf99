"""Session collection persistence.

The whole collection is stored as one JSON list (newest first) under a single
key. Every mutation follows read-merge-write: load the full list, change the
entry matching the session id, write the full list back. All of that happens
under one lock per database file, so two enrichment workflows finishing at
the same time cannot overwrite each other's changes.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from tabrecall.core.exceptions import SessionNotFoundError
from tabrecall.storage.interface import Session
from tabrecall.storage.kvstore import KVStore

logger = logging.getLogger(__name__)
SESSIONS_KEY = "sessions"

SessionMutator = Callable[[Session], Session]


class SessionRepository:
    """Read-merge-write access to the persisted session collection."""

    _locks: Dict[str, threading.RLock] = {}
    _locks_guard = threading.Lock()

    def __init__(self, kvstore: KVStore):
        self.kvstore = kvstore
        lock_key = str(kvstore.db_path.resolve())
        with self._locks_guard:
            self._lock = self._locks.setdefault(lock_key, threading.RLock())

    def _load(self) -> List[Dict[str, Any]]:
        raw = self.kvstore.get(SESSIONS_KEY, [])
        return raw if isinstance(raw, list) else []

    def _save(self, raw_sessions: List[Dict[str, Any]]) -> None:
        self.kvstore.set(SESSIONS_KEY, raw_sessions)

    def list_sessions(self) -> List[Session]:
        """Return every session, most recently captured first."""
        with self._lock:
            raw_sessions = self._load()
        sessions: List[Session] = []
        for raw in raw_sessions:
            try:
                sessions.append(Session.from_dict(raw))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(f"Skipping unreadable stored session: {exc}")
        return sessions

    def get_session(self, session_id: str) -> Session:
        for session in self.list_sessions():
            if session.id == session_id:
                return session
        raise SessionNotFoundError(session_id)

    def add_session(self, session: Session) -> Session:
        """Prepend a newly captured session."""
        with self._lock:
            raw_sessions = self._load()
            if any(raw.get("id") == session.id for raw in raw_sessions):
                raise ValueError(f"Session id already exists: {session.id}")
            raw_sessions.insert(0, session.to_dict())
            self._save(raw_sessions)
        logger.info(f"Saved session {session.id} ({session.tab_count} tabs)")
        return session

    def mutate_session(self, session_id: str, mutator: SessionMutator) -> Session:
        """Apply ``mutator`` to one session inside a single read-merge-write."""
        with self._lock:
            raw_sessions = self._load()
            for index, raw in enumerate(raw_sessions):
                if str(raw.get("id")) != session_id:
                    continue
                updated = mutator(Session.from_dict(raw))
                raw_sessions[index] = updated.to_dict()
                self._save(raw_sessions)
                return updated
        raise SessionNotFoundError(session_id)

    def update_session(self, session_id: str, **updates: Any) -> Session:
        """Replace the given fields on one session; ``None`` clears optional fields."""
        return self.mutate_session(
            session_id, lambda session: dataclasses.replace(session, **updates)
        )

    def rename_session(self, session_id: str, name: str) -> Session:
        name = (name or "").strip()
        if not name:
            raise ValueError("Session name cannot be empty")
        return self.update_session(session_id, name=name)

    def delete_session(self, session_id: str) -> None:
        with self._lock:
            raw_sessions = self._load()
            remaining = [raw for raw in raw_sessions if str(raw.get("id")) != session_id]
            if len(remaining) == len(raw_sessions):
                raise SessionNotFoundError(session_id)
            self._save(remaining)
        logger.info(f"Deleted session {session_id}")

    def clear(self) -> int:
        with self._lock:
            count = len(self._load())
            self._save([])
        return count

    def export_sessions(self) -> List[Dict[str, Any]]:
        """Return the stored collection in its JSON export form."""
        with self._lock:
            return self._load()

    def import_sessions(self, payload: Any) -> int:
        """Append sessions whose ids are not stored yet. Returns the number added."""
        if not isinstance(payload, list):
            raise ValueError("Invalid session data format: expected a list of sessions")

        with self._lock:
            raw_sessions = self._load()
            known_ids = {str(raw.get("id")) for raw in raw_sessions}
            added = 0
            for raw in payload:
                if not isinstance(raw, dict) or "id" not in raw:
                    logger.warning("Skipping imported entry without an id")
                    continue
                try:
                    session = Session.from_dict(raw)
                except (TypeError, ValueError) as exc:
                    logger.warning(f"Skipping malformed imported session: {exc}")
                    continue
                if session.id in known_ids:
                    continue
                raw_sessions.append(session.to_dict())
                known_ids.add(session.id)
                added += 1
            if added:
                self._save(raw_sessions)
        logger.info(f"Imported {added} of {len(payload)} sessions")
        return added

    def find_session(self, session_id: str) -> Optional[Session]:
        try:
            return self.get_session(session_id)
        except SessionNotFoundError:
            return None
