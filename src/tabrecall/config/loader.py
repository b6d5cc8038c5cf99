"""Configuration loading and merging logic."""

import sys
import tomllib
from importlib import resources
from pathlib import Path
from typing import Any, Dict

CONFIG_FILES = [
    "general.toml",
    "api.toml",
    "prompts.toml",
]


def _get_config_dir() -> Path:
    """Return the configuration directory path."""
    return Path.home() / ".config" / "tabrecall"


def merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge ``update`` into ``base`` in place and return ``base``."""
    for k, v in update.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config() -> Dict[str, Any]:
    """Load bundled TOML defaults, then overlay the user's config files."""
    config_dir = _get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    final_config: Dict[str, Any] = {
        "general": {},
        "limits": {},
        "enrichment": {},
        "search": {},
        "restore": {},
        "defaults": {},
        "api": {},
        "prompts": {},
    }

    # 1. Bundled defaults shipped inside the package
    for filename in CONFIG_FILES:
        try:
            resource_path = resources.files("tabrecall.data.config").joinpath(filename)
            with resource_path.open("rb") as f:
                merge(final_config, tomllib.load(f))
        except Exception as e:
            print(f"Warning: Failed to load bundled config {filename}: {e}")

    # 2. User overrides
    for filename in CONFIG_FILES:
        user_file_path = config_dir / filename
        if not user_file_path.exists():
            continue
        try:
            with open(user_file_path, "rb") as f:
                merge(final_config, tomllib.load(f))
        except tomllib.TOMLDecodeError as e:
            print(
                f"Error: Invalid configuration file at {user_file_path}",
                file=sys.stderr,
            )
            print(f"Details: {e}", file=sys.stderr)
            sys.exit(1)
        except OSError as e:
            print(f"Warning: Failed to load config from {user_file_path}: {e}")

    return final_config
