"""Core transport and error types for tabrecall (lazy exports)."""

from __future__ import annotations

from importlib import import_module
from typing import Dict, Tuple

_EXPORTS: Dict[str, Tuple[str, str]] = {
    "post_json": ("tabrecall.core.api_client", "post_json"),
    "strip_think_tags": ("tabrecall.core.api_client", "strip_think_tags"),
    "TabRecallError": ("tabrecall.core.exceptions", "TabRecallError"),
    "ConfigurationError": ("tabrecall.core.exceptions", "ConfigurationError"),
    "UpstreamError": ("tabrecall.core.exceptions", "UpstreamError"),
    "ResponseParseError": ("tabrecall.core.exceptions", "ResponseParseError"),
    "SessionNotFoundError": ("tabrecall.core.exceptions", "SessionNotFoundError"),
    "StorageError": ("tabrecall.core.exceptions", "StorageError"),
    "RestoreError": ("tabrecall.core.exceptions", "RestoreError"),
}


def __getattr__(name: str):
    if name not in _EXPORTS:
        raise AttributeError(f"module 'tabrecall.core' has no attribute {name!r}")
    module_name, attr_name = _EXPORTS[name]
    module = import_module(module_name)
    return getattr(module, attr_name)


__all__ = sorted(_EXPORTS.keys())
