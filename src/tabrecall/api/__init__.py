"""Public programmatic API surface for tabrecall."""

from tabrecall.api.client import CaptureResult, TabRecallClient

__all__ = [
    "CaptureResult",
    "TabRecallClient",
]
