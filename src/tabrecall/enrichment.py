"""Background enrichment of captured sessions.

Each workflow moves a session through ``idle -> generating -> complete|error``:

1. summarize the tabs (failure is fatal and ends in ``error``);
2. optionally group the tabs into named clusters (failure means no groups);
3. embed the summary when the provider can (failure means no vector);
4. persist the summary and groups and mark the session ``complete``.

Workflows run on a thread pool. ``schedule`` returns the ``Future`` as the
task handle while ``Session.generation_status`` is what other readers poll.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from tabrecall.config import (
    ENRICHMENT_WORKERS,
    GROUP_TABS_PROMPT,
    MAX_TAB_GROUPS,
    SUMMARIZE_TABS_PROMPT,
)
from tabrecall.core.exceptions import ResponseParseError, UpstreamError
from tabrecall.providers import (
    LanguageModelProvider,
    ProviderFactory,
    build_provider,
    supports_embeddings,
)
from tabrecall.settings import Settings
from tabrecall.storage.interface import GenerationStatus, Session, Tab, TabGroup
from tabrecall.storage.sessions import SessionRepository
from tabrecall.storage.vector_store import VectorStore

logger = logging.getLogger(__name__)
GROUP_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")
SUMMARY_MAX_TOKENS = 200
GROUPING_MAX_TOKENS = 300


@dataclass
class EnrichmentOutcome:
    session_id: str
    status: GenerationStatus
    context: Optional[str] = None
    tab_groups: List[TabGroup] = field(default_factory=list)
    has_embedding: bool = False


def format_tab_list(tabs: Sequence[Tab]) -> str:
    return "\n".join(f"{i}. {tab.title} ({tab.url})" for i, tab in enumerate(tabs, start=1))


def parse_tab_groups(
    text: str, tab_count: int, max_groups: int = MAX_TAB_GROUPS
) -> List[TabGroup]:
    """Parse a grouping reply into validated groups.

    Groups need a name and at least one in-range index. A tab belongs to at
    most one group: indices already claimed by an earlier group are dropped.
    Raises ``ResponseParseError`` when no JSON array can be read.
    """
    match = GROUP_ARRAY_PATTERN.search(text or "")
    if not match:
        raise ResponseParseError("No JSON array found in grouping reply")
    try:
        raw_groups = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ResponseParseError(f"Malformed grouping reply: {exc}") from exc
    if not isinstance(raw_groups, list):
        raise ResponseParseError("Grouping reply is not a list")

    groups: List[TabGroup] = []
    assigned: set[int] = set()
    for raw in raw_groups:
        if not isinstance(raw, dict):
            continue
        name = str(raw.get("name") or "").strip()
        raw_indices = raw.get("tabIndices")
        if not name or not isinstance(raw_indices, list):
            continue
        indices: List[int] = []
        for value in raw_indices:
            if isinstance(value, bool) or not isinstance(value, int):
                continue
            if 1 <= value <= tab_count and value not in assigned:
                assigned.add(value)
                indices.append(value)
        if indices:
            groups.append(TabGroup(name=name, tab_indices=indices))
        if len(groups) >= max_groups:
            break
    return groups


class EnrichmentOrchestrator:
    """Runs enrichment workflows and owns every write of enrichment fields."""

    def __init__(
        self,
        repository: SessionRepository,
        vector_store: VectorStore,
        provider_factory: ProviderFactory = build_provider,
        workers: Optional[int] = None,
    ):
        self.repository = repository
        self.vector_store = vector_store
        self.provider_factory = provider_factory
        self._workers = workers or ENRICHMENT_WORKERS
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()
        self._in_flight: Dict[str, "Future[EnrichmentOutcome]"] = {}
        self._in_flight_lock = threading.Lock()

    def _get_executor(self) -> ThreadPoolExecutor:
        """Lazy initialization of thread pool executor."""
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._workers,
                    thread_name_prefix="session_enrichment",
                )
            return self._executor

    def _begin(self, session_id: str, settings: Settings) -> LanguageModelProvider:
        """Validate configuration, then persist ``generating``.

        Configuration errors and unknown ids are raised before anything is
        written.
        """
        provider = self.provider_factory(settings)
        self.repository.get_session(session_id)
        self.repository.update_session(
            session_id, generation_status=GenerationStatus.generating()
        )
        return provider

    def _claim(
        self, session_id: str, settings: Settings
    ) -> Tuple["Future[EnrichmentOutcome]", Optional[LanguageModelProvider]]:
        """Register a workflow for ``session_id`` unless one is already running.

        Returns the running workflow's future with no provider when the
        session is already claimed. A session stuck in ``generating`` with
        no live workflow (e.g. after a crash) can be claimed again.
        """
        with self._in_flight_lock:
            running = self._in_flight.get(session_id)
            if running is not None and not running.done():
                return running, None
            provider = self._begin(session_id, settings)
            future: "Future[EnrichmentOutcome]" = Future()
            # A running future cannot be cancelled out from under the worker.
            future.set_running_or_notify_cancel()
            self._in_flight[session_id] = future
            return future, provider

    def _execute(
        self,
        future: "Future[EnrichmentOutcome]",
        session_id: str,
        settings: Settings,
        provider: LanguageModelProvider,
    ) -> None:
        try:
            future.set_result(self._run(session_id, settings, provider))
        except Exception as exc:
            future.set_exception(exc)
        finally:
            self._release(session_id, future)

    def _release(self, session_id: str, future: "Future[EnrichmentOutcome]") -> None:
        with self._in_flight_lock:
            if self._in_flight.get(session_id) is future:
                del self._in_flight[session_id]

    def schedule(self, session_id: str, settings: Settings) -> "Future[EnrichmentOutcome]":
        """Start enrichment in the background and return its handle.

        While a workflow for the session is still running its handle is
        returned instead of starting a second one.
        """
        future, provider = self._claim(session_id, settings)
        if provider is None:
            logger.info(f"Enrichment already running for session {session_id}")
            return future
        try:
            self._get_executor().submit(self._execute, future, session_id, settings, provider)
        except RuntimeError as exc:
            # Executor already shut down.
            future.set_result(self._fail(session_id, str(exc)))
            self._release(session_id, future)
            raise
        logger.debug(f"Scheduled enrichment for session {session_id}")
        return future

    def enrich(self, session_id: str, settings: Settings) -> EnrichmentOutcome:
        """Run enrichment in the calling thread.

        Waits for and returns the running workflow's outcome when one is
        already in flight for the session.
        """
        future, provider = self._claim(session_id, settings)
        if provider is None:
            logger.info(f"Waiting for running enrichment of session {session_id}")
        else:
            self._execute(future, session_id, settings, provider)
        return future.result()

    def _run(
        self, session_id: str, settings: Settings, provider: LanguageModelProvider
    ) -> EnrichmentOutcome:
        try:
            return self._run_steps(session_id, settings, provider)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.error(f"Enrichment failed for session {session_id}: {message}")
            return self._fail(session_id, message)

    def _run_steps(
        self, session_id: str, settings: Settings, provider: LanguageModelProvider
    ) -> EnrichmentOutcome:
        session = self.repository.get_session(session_id)
        logger.info(
            f"Enriching session {session_id} ({session.tab_count} tabs) "
            f"with {settings.provider}"
        )

        context = self.generate_summary(provider, session)
        tab_groups = self.generate_tab_groups(provider, session) if settings.auto_tab_groups else []
        has_embedding = self.store_embedding(provider, session_id, context)

        self.repository.update_session(
            session_id,
            context=context,
            tab_groups=tab_groups or None,
            generation_status=GenerationStatus.complete(),
        )
        logger.info(
            f"Enrichment complete for session {session_id}: "
            f"{len(tab_groups)} groups, embedding={'yes' if has_embedding else 'no'}"
        )
        return EnrichmentOutcome(
            session_id=session_id,
            status=GenerationStatus.complete(),
            context=context,
            tab_groups=tab_groups,
            has_embedding=has_embedding,
        )

    def _fail(self, session_id: str, message: str) -> EnrichmentOutcome:
        status = GenerationStatus.error(message)
        try:
            self.repository.update_session(
                session_id, context=None, tab_groups=None, generation_status=status
            )
        except Exception as exc:
            logger.error(f"Failed to record enrichment error for {session_id}: {exc}")
        try:
            self.vector_store.delete(session_id)
        except Exception as exc:
            logger.warning(f"Could not drop embedding for session {session_id}: {exc}")
        return EnrichmentOutcome(session_id=session_id, status=status)

    def generate_summary(self, provider: LanguageModelProvider, session: Session) -> str:
        if not session.tabs:
            raise ValueError("Session has no tabs to summarize")
        prompt = SUMMARIZE_TABS_PROMPT.format(tab_list=format_tab_list(session.tabs))
        summary = provider.complete(prompt, max_tokens=SUMMARY_MAX_TOKENS).strip()
        if not summary:
            raise UpstreamError("Summary reply was empty")
        return summary

    def generate_tab_groups(
        self, provider: LanguageModelProvider, session: Session
    ) -> List[TabGroup]:
        """Return advisory groups; any failure yields an empty list."""
        if not session.tabs:
            return []
        prompt = GROUP_TABS_PROMPT.format(
            tab_list=format_tab_list(session.tabs), max_groups=MAX_TAB_GROUPS
        )
        try:
            reply = provider.complete(prompt, max_tokens=GROUPING_MAX_TOKENS)
            return parse_tab_groups(reply, session.tab_count)
        except Exception as exc:
            logger.warning(f"Tab grouping failed for session {session.id}: {exc}")
            return []

    def store_embedding(
        self, provider: LanguageModelProvider, session_id: str, context: str
    ) -> bool:
        """Embed and persist the summary; drop any older vector if that is not possible."""
        if supports_embeddings(provider):
            try:
                vector = provider.embed(context)
                self.vector_store.put(
                    session_id, vector, embedding_model=provider.embedding_model
                )
                return True
            except Exception as exc:
                logger.warning(f"Embedding failed for session {session_id}: {exc}")
        # No fresh vector: a previous one would describe an outdated summary.
        try:
            self.vector_store.delete(session_id)
        except Exception as exc:
            logger.warning(f"Could not drop old embedding for session {session_id}: {exc}")
        return False

    def shutdown(self, wait: bool = True) -> None:
        with self._executor_lock:
            executor = self._executor
            self._executor = None
        if executor is not None:
            executor.shutdown(wait=wait)
