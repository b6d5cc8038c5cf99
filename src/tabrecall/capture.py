"""Build sessions from browser window snapshots.

A snapshot is the JSON a browser returns for "all windows with their tabs":
a list of window objects (or ``{"windows": [...]}``), each carrying ``id``,
``focused``, ``type`` and a ``tabs`` list of ``{url, title, favIconUrl,
active}`` objects.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from tabrecall.storage.interface import Session, Tab, WindowInfo

logger = logging.getLogger(__name__)


def _snapshot_windows(snapshot: Any) -> List[Dict[str, Any]]:
    if isinstance(snapshot, dict):
        snapshot = snapshot.get("windows")
    if not isinstance(snapshot, list):
        raise ValueError("Snapshot must be a list of windows")
    windows = [window for window in snapshot if isinstance(window, dict)]
    if len(windows) != len(snapshot):
        logger.warning(f"Ignoring {len(snapshot) - len(windows)} malformed window entries")
    return windows


def _window_tabs(window: Dict[str, Any], window_index: int) -> List[Tab]:
    tabs = []
    for raw in window.get("tabs") or []:
        if not isinstance(raw, dict):
            continue
        tabs.append(
            Tab(
                url=str(raw.get("url") or ""),
                title=str(raw.get("title") or ""),
                window_index=window_index,
                fav_icon_url=raw.get("favIconUrl"),
                active=bool(raw.get("active", False)),
            )
        )
    return tabs


def default_session_name(now: datetime) -> str:
    return f"Session {now.strftime('%Y-%m-%d %H:%M:%S')}"


def build_session(
    windows_snapshot: Any,
    name: Optional[str] = None,
    multi_window: bool = True,
    now: Optional[datetime] = None,
) -> Session:
    """Turn a window snapshot into a new idle ``Session``.

    With ``multi_window`` off only the focused window (or the first one when
    none is focused) is kept; its tabs get window index 0 and no window
    descriptors are recorded.
    """
    windows = _snapshot_windows(windows_snapshot)
    now = now or datetime.now()

    tabs: List[Tab] = []
    descriptors: List[WindowInfo] = []
    if multi_window:
        for window_index, window in enumerate(windows):
            window_tabs = _window_tabs(window, window_index)
            tabs.extend(window_tabs)
            descriptors.append(
                WindowInfo(
                    window_id=window.get("id"),
                    focused=bool(window.get("focused", False)),
                    tab_count=len(window_tabs),
                    window_type=str(window.get("type") or "normal"),
                )
            )
    elif windows:
        current = next((w for w in windows if w.get("focused")), windows[0])
        tabs = _window_tabs(current, 0)

    session = Session(
        id=uuid.uuid4().hex,
        name=(name or "").strip() or default_session_name(now),
        tabs=tabs,
        windows=descriptors,
        timestamp=int(now.timestamp() * 1000),
    )
    logger.debug(
        f"Built session {session.id} with {session.tab_count} tabs "
        f"across {session.window_count} windows"
    )
    return session
