"""Core exception types for tabrecall."""

from __future__ import annotations

from typing import Optional


class TabRecallError(Exception):
    """Base error for tabrecall runtime failures."""


class ConfigurationError(TabRecallError):
    """Raised for missing credentials, unknown providers or unsupported capabilities."""


class UpstreamError(TabRecallError):
    """Raised when a language-model or embedding endpoint call fails."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResponseParseError(UpstreamError):
    """Raised when a model reply does not contain the expected structured payload."""


class SessionNotFoundError(TabRecallError):
    """Raised when a session id does not exist in the collection."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class StorageError(TabRecallError):
    """Raised when the underlying durable storage is unavailable."""


class RestoreError(TabRecallError):
    """Raised when a session cannot be turned into a restore plan."""
