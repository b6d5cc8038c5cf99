"""User preferences persisted in the key-value store."""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from tabrecall.config import DEFAULT_SETTINGS, PROVIDERS
from tabrecall.core.exceptions import ConfigurationError
from tabrecall.storage.kvstore import KVStore

logger = logging.getLogger(__name__)
SETTINGS_KEY = "settings"
MIN_SENSITIVITY = 1
MAX_SENSITIVITY = 10

# Python attribute -> stored (extension-compatible) key
_STORED_KEYS = {
    "provider": "aiProvider",
    "model": "model",
    "api_key": "apiKey",
    "search_sensitivity": "searchSensitivity",
    "auto_context": "autoContext",
    "auto_tab_groups": "autoTabGroups",
    "ai_ranking": "aiRanking",
    "multi_window": "multiWindow",
}


@dataclass(frozen=True)
class Settings:
    provider: str = DEFAULT_SETTINGS.get("provider", "anthropic")
    model: Optional[str] = None
    api_key: Optional[str] = None
    search_sensitivity: int = DEFAULT_SETTINGS.get("search_sensitivity", 7)
    auto_context: bool = DEFAULT_SETTINGS.get("auto_context", True)
    auto_tab_groups: bool = DEFAULT_SETTINGS.get("auto_tab_groups", False)
    ai_ranking: bool = DEFAULT_SETTINGS.get("ai_ranking", False)
    multi_window: bool = DEFAULT_SETTINGS.get("multi_window", True)

    @property
    def provider_config(self) -> Dict[str, Any]:
        return PROVIDERS.get(self.provider, {})

    def resolve_model(self) -> Optional[str]:
        return self.model or self.provider_config.get("default_model")

    def resolve_api_key(self) -> Optional[str]:
        """Return the stored credential, falling back to the provider's env var."""
        if self.api_key:
            return self.api_key
        env_var = self.provider_config.get("api_key_env")
        if env_var:
            return os.environ.get(env_var) or None
        return None

    @property
    def has_credentials(self) -> bool:
        return bool(self.resolve_api_key())

    def validate(self) -> None:
        if self.provider not in PROVIDERS:
            known = ", ".join(sorted(PROVIDERS)) or "none"
            raise ConfigurationError(
                f"Unknown provider '{self.provider}' (configured: {known})"
            )
        if not isinstance(self.search_sensitivity, int) or not (
            MIN_SENSITIVITY <= self.search_sensitivity <= MAX_SENSITIVITY
        ):
            raise ConfigurationError(
                f"searchSensitivity must be an integer in "
                f"[{MIN_SENSITIVITY}, {MAX_SENSITIVITY}], got {self.search_sensitivity!r}"
            )

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for attr, stored_key in _STORED_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[stored_key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        kwargs = {
            attr: data[stored_key]
            for attr, stored_key in _STORED_KEYS.items()
            if stored_key in data
        }
        return cls(**kwargs)

    def with_updates(self, **updates: Any) -> "Settings":
        return dataclasses.replace(self, **updates)


def load_settings(kvstore: KVStore) -> Settings:
    raw = kvstore.get(SETTINGS_KEY)
    if not isinstance(raw, dict):
        return Settings()
    return Settings.from_dict(raw)


def save_settings(kvstore: KVStore, settings: Settings) -> None:
    settings.validate()
    kvstore.set(SETTINGS_KEY, settings.to_dict())
    logger.info(f"Saved settings (provider={settings.provider})")


def parse_setting_value(attr: str, raw_value: str) -> Any:
    """Convert a ``KEY=VALUE`` string from the command line to a typed value."""
    if attr not in _STORED_KEYS:
        raise ConfigurationError(
            f"Unknown setting '{attr}'. Known settings: {', '.join(_STORED_KEYS)}"
        )
    field_type = {f.name: f.type for f in dataclasses.fields(Settings)}[attr]
    if field_type == "bool":
        lowered = raw_value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ConfigurationError(f"Setting '{attr}' expects true/false, got '{raw_value}'")
    if field_type == "int":
        try:
            return int(raw_value)
        except ValueError as exc:
            raise ConfigurationError(
                f"Setting '{attr}' expects an integer, got '{raw_value}'"
            ) from exc
    return raw_value.strip() or None
