"""Plan how a saved session is reopened.

Opening windows is the browser's job. These helpers only decide which URLs
go into which window, and skip pages a browser refuses to open on request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from tabrecall.config import MAX_TABS_PER_WINDOW
from tabrecall.core.exceptions import RestoreError
from tabrecall.storage.interface import Session, Tab

RESTRICTED_URL_PREFIXES = (
    "about:",
    "chrome:",
    "edge:",
    "moz-extension:",
    "chrome-extension:",
    "firefox:",
    "view-source:",
)
CONTAINER_COLORS = (
    "blue",
    "orange",
    "green",
    "purple",
    "red",
    "yellow",
    "pink",
    "turquoise",
)


def is_restorable_url(url: str) -> bool:
    lowered = (url or "").lower()
    return bool(lowered) and not lowered.startswith(RESTRICTED_URL_PREFIXES)


@dataclass
class RestorePlan:
    windows: List[List[str]] = field(default_factory=list)
    restored: int = 0
    skipped: int = 0


@dataclass
class ContainerTab:
    url: str
    container: str
    color: str


@dataclass
class GroupedRestorePlan:
    """Tabs per window, each tagged with the container of its group."""

    windows: List[List[ContainerTab]] = field(default_factory=list)
    containers: List[str] = field(default_factory=list)
    restored: int = 0

    @property
    def windows_created(self) -> int:
        return len(self.windows)


def _restorable_urls(tabs: List[Tab]) -> List[str]:
    return [tab.url for tab in tabs if is_restorable_url(tab.url)]


def plan_restore(session: Session) -> RestorePlan:
    """Plan a plain restore.

    Sessions captured across several windows reopen window by window; windows
    left without a restorable tab are skipped. A single-window session with
    nothing restorable raises ``RestoreError``.
    """
    plan = RestorePlan()
    if len(session.windows) > 1:
        for window_index in range(len(session.windows)):
            window_tabs = [tab for tab in session.tabs if tab.window_index == window_index]
            urls = _restorable_urls(window_tabs)
            if urls:
                plan.windows.append(urls)
                plan.restored += len(urls)
            plan.skipped += len(window_tabs) - len(urls)
        return plan

    urls = _restorable_urls(session.tabs)
    if not urls:
        raise RestoreError("No valid URLs to restore (all were protected browser pages)")
    plan.windows.append(urls)
    plan.restored = len(urls)
    plan.skipped = len(session.tabs) - len(urls)
    return plan


def plan_grouped_restore(
    session: Session, max_tabs_per_window: Optional[int] = None
) -> GroupedRestorePlan:
    """Plan a restore with one container per tab group.

    Groups are packed into windows in order; a new window starts when the
    next group would push the current one past ``max_tabs_per_window``. A
    group larger than the limit still gets a window of its own.
    """
    if not session.tab_groups:
        raise RestoreError("This session has no tab groups")
    limit = max_tabs_per_window or MAX_TABS_PER_WINDOW

    plan = GroupedRestorePlan()
    current: Optional[List[ContainerTab]] = None
    for position, group in enumerate(session.tab_groups):
        color = CONTAINER_COLORS[position % len(CONTAINER_COLORS)]
        plan.containers.append(group.name)
        urls = [
            session.tabs[index - 1].url
            for index in group.tab_indices
            if 1 <= index <= session.tab_count
            and is_restorable_url(session.tabs[index - 1].url)
        ]
        if not urls:
            continue
        if current is None or len(current) + len(urls) > limit:
            current = []
            plan.windows.append(current)
        current.extend(ContainerTab(url=url, container=group.name, color=color) for url in urls)
        plan.restored += len(urls)
    return plan
