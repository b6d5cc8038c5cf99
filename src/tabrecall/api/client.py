"""Programmatic client for tabrecall session workflows."""

from __future__ import annotations

import logging
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from tabrecall.capture import build_session
from tabrecall.core.exceptions import ConfigurationError
from tabrecall.enrichment import EnrichmentOrchestrator, EnrichmentOutcome
from tabrecall.providers import ProviderFactory, build_provider
from tabrecall.restore import (
    GroupedRestorePlan,
    RestorePlan,
    plan_grouped_restore,
    plan_restore,
)
from tabrecall.search import SearchResult, search_sessions
from tabrecall.settings import Settings, load_settings, save_settings
from tabrecall.storage import KVStore, Session, SessionRepository, VectorStore

logger = logging.getLogger(__name__)
KV_NAMESPACE = "tabrecall"


@dataclass
class CaptureResult:
    """A freshly stored session and, when scheduled, its enrichment handle."""

    session: Session
    enrichment: Optional["Future[EnrichmentOutcome]"] = None


class TabRecallClient:
    """Library entry point wiring storage, enrichment and search together."""

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        provider_factory: ProviderFactory = build_provider,
        workers: Optional[int] = None,
    ) -> None:
        path = Path(db_path).expanduser() if db_path else None
        self.kvstore = KVStore(KV_NAMESPACE, db_path=path)
        self.repository = SessionRepository(self.kvstore)
        self.vector_store = VectorStore(db_path=self.kvstore.db_path)
        self.provider_factory = provider_factory
        self.orchestrator = EnrichmentOrchestrator(
            self.repository,
            self.vector_store,
            provider_factory=provider_factory,
            workers=workers,
        )

    def __enter__(self) -> "TabRecallClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # Settings

    def get_settings(self) -> Settings:
        return load_settings(self.kvstore)

    def save_settings(self, settings: Settings) -> Settings:
        save_settings(self.kvstore, settings)
        return settings

    # Capture and enrichment

    def capture_session(
        self,
        snapshot: Any,
        name: Optional[str] = None,
        enrich: Optional[bool] = None,
    ) -> CaptureResult:
        """Store a new session from a window snapshot.

        Returns as soon as the session is persisted. Enrichment runs in the
        background when ``enrich`` (defaulting to the ``auto_context``
        setting) is on and a provider is configured; otherwise it is skipped.
        """
        settings = self.get_settings()
        session = build_session(snapshot, name=name, multi_window=settings.multi_window)
        self.repository.add_session(session)
        logger.info(f"Captured session {session.id} ({session.tab_count} tabs)")

        should_enrich = settings.auto_context if enrich is None else enrich
        if not should_enrich:
            return CaptureResult(session=session)
        try:
            future = self.orchestrator.schedule(session.id, settings)
        except ConfigurationError as exc:
            logger.warning(f"Skipping enrichment for {session.id}: {exc}")
            return CaptureResult(session=session)
        return CaptureResult(session=self.repository.get_session(session.id), enrichment=future)

    def enrich_session(
        self, session_id: str, wait: bool = False
    ) -> Union[EnrichmentOutcome, "Future[EnrichmentOutcome]"]:
        """(Re)generate enrichment; returns the outcome when ``wait`` else the handle."""
        settings = self.get_settings()
        if wait:
            return self.orchestrator.enrich(session_id, settings)
        return self.orchestrator.schedule(session_id, settings)

    # Collection management

    def list_sessions(self) -> List[Session]:
        return self.repository.list_sessions()

    def get_session(self, session_id: str) -> Session:
        return self.repository.get_session(session_id)

    def rename_session(self, session_id: str, name: str) -> Session:
        return self.repository.rename_session(session_id, name)

    def delete_session(self, session_id: str) -> None:
        self.repository.delete_session(session_id)
        self.vector_store.delete(session_id)

    def clear_sessions(self) -> int:
        removed = self.repository.clear()
        self.vector_store.clear()
        return removed

    def export_sessions(self) -> List[Dict[str, Any]]:
        return self.repository.export_sessions()

    def import_sessions(self, payload: Any) -> int:
        return self.repository.import_sessions(payload)

    # Search and restore

    def search(self, query: str) -> SearchResult:
        return search_sessions(
            query,
            repository=self.repository,
            vector_store=self.vector_store,
            settings=self.get_settings(),
            provider_factory=self.provider_factory,
        )

    def plan_restore(
        self, session_id: str, grouped: bool = False
    ) -> Union[RestorePlan, GroupedRestorePlan]:
        session = self.repository.get_session(session_id)
        if grouped:
            return plan_grouped_restore(session)
        return plan_restore(session)

    def close(self) -> None:
        self.orchestrator.shutdown(wait=True)
