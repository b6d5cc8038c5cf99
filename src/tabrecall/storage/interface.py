"""Storage data models for tabrecall.

Sessions are persisted as JSON documents using the camelCase field names of
the browser extension export format, so exported collections round-trip
between the two.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

LEGACY_COMPLETE_STATUS = "complete"
LEGACY_ERROR_PREFIX = "error:"


class GenerationState(str, Enum):
    """Lifecycle of the enrichment workflow for one session."""

    IDLE = "idle"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class GenerationStatus:
    state: GenerationState = GenerationState.IDLE
    message: Optional[str] = None

    @classmethod
    def idle(cls) -> "GenerationStatus":
        return cls(GenerationState.IDLE)

    @classmethod
    def generating(cls) -> "GenerationStatus":
        return cls(GenerationState.GENERATING)

    @classmethod
    def complete(cls) -> "GenerationStatus":
        return cls(GenerationState.COMPLETE)

    @classmethod
    def error(cls, message: str) -> "GenerationStatus":
        return cls(GenerationState.ERROR, message)

    @property
    def is_terminal(self) -> bool:
        return self.state in (GenerationState.COMPLETE, GenerationState.ERROR)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"state": self.state.value}
        if self.message:
            data["message"] = self.message
        return data

    @classmethod
    def from_value(cls, raw: Any) -> "GenerationStatus":
        """Parse a stored status, accepting the extension's free-text form."""
        if isinstance(raw, dict):
            try:
                state = GenerationState(raw.get("state", "idle"))
            except ValueError:
                state = GenerationState.IDLE
            return cls(state, raw.get("message"))
        if isinstance(raw, str):
            lowered = raw.strip().lower()
            if lowered == LEGACY_COMPLETE_STATUS:
                return cls.complete()
            if lowered.startswith(LEGACY_ERROR_PREFIX):
                return cls.error(raw.strip()[len(LEGACY_ERROR_PREFIX):].strip())
            try:
                return cls(GenerationState(lowered))
            except ValueError:
                # Interrupted "Generating ..." states from an old export.
                return cls.idle()
        return cls.idle()

    def __str__(self) -> str:
        if self.state is GenerationState.ERROR and self.message:
            return f"error: {self.message}"
        return self.state.value


@dataclass(frozen=True)
class Tab:
    url: str
    title: str = ""
    window_index: int = 0
    fav_icon_url: Optional[str] = None
    active: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "title": self.title,
            "windowIndex": self.window_index,
            "active": self.active,
        }
        if self.fav_icon_url:
            data["favIconUrl"] = self.fav_icon_url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tab":
        return cls(
            url=str(data.get("url") or ""),
            title=str(data.get("title") or ""),
            window_index=int(data.get("windowIndex") or 0),
            fav_icon_url=data.get("favIconUrl"),
            active=bool(data.get("active", False)),
        )


@dataclass(frozen=True)
class WindowInfo:
    window_id: Optional[int] = None
    focused: bool = False
    tab_count: int = 0
    window_type: str = "normal"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.window_id,
            "focused": self.focused,
            "tabCount": self.tab_count,
            "type": self.window_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WindowInfo":
        return cls(
            window_id=data.get("id"),
            focused=bool(data.get("focused", False)),
            tab_count=int(data.get("tabCount") or 0),
            window_type=str(data.get("type") or "normal"),
        )


@dataclass(frozen=True)
class TabGroup:
    """A named cluster of tabs; indices are 1-based into ``Session.tabs``."""

    name: str
    tab_indices: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "tabIndices": list(self.tab_indices)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TabGroup":
        return cls(
            name=str(data.get("name") or ""),
            tab_indices=[int(i) for i in data.get("tabIndices") or []],
        )


@dataclass(frozen=True)
class Session:
    """One captured snapshot of open tabs plus enrichment output."""

    id: str
    name: str
    tabs: List[Tab]
    windows: List[WindowInfo]
    timestamp: int
    context: Optional[str] = None
    tab_groups: Optional[List[TabGroup]] = None
    generation_status: GenerationStatus = field(default_factory=GenerationStatus)

    @property
    def tab_count(self) -> int:
        return len(self.tabs)

    @property
    def window_count(self) -> int:
        return max(1, len(self.windows))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "tabs": [tab.to_dict() for tab in self.tabs],
            "windows": [window.to_dict() for window in self.windows],
            "timestamp": self.timestamp,
            "tabCount": self.tab_count,
            "windowCount": self.window_count,
            "generationStatus": self.generation_status.to_dict(),
        }
        if self.context:
            data["context"] = self.context
        if self.tab_groups:
            data["tabGroups"] = [group.to_dict() for group in self.tab_groups]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        raw_groups = data.get("tabGroups")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            tabs=[Tab.from_dict(t) for t in data.get("tabs") or []],
            windows=[WindowInfo.from_dict(w) for w in data.get("windows") or []],
            timestamp=int(data.get("timestamp") or 0),
            context=data.get("context") or None,
            tab_groups=[TabGroup.from_dict(g) for g in raw_groups] if raw_groups else None,
            generation_status=GenerationStatus.from_value(data.get("generationStatus")),
        )


@dataclass(frozen=True)
class EmbeddingRecord:
    session_id: str
    vector: List[float]
    timestamp: int
    embedding_model: Optional[str] = None

    @property
    def dimensions(self) -> int:
        return len(self.vector)
