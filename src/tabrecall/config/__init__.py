"""Configuration constants and re-exports for tabrecall."""

import os
from pathlib import Path

from tabrecall.config.loader import _get_config_dir, load_config

# --- Initialize Configuration ---
_CONFIG = load_config()

# General
_gen = _CONFIG["general"]
LOG_LEVEL = _gen.get("log_level", "INFO")
LOG_FILE = _gen.get("log_file", "~/.config/tabrecall/logs/tabrecall.log")
REQUEST_TIMEOUT = _gen.get("request_timeout", 60)

# Database
_db_env_var_name = _gen.get("db_path_env_var", "TABRECALL_DB_PATH")
_env_path = os.environ.get(_db_env_var_name)

if _env_path:
    DB_PATH = Path(_env_path)
elif _gen.get("db_path"):
    DB_PATH = Path(_gen["db_path"]).expanduser()
else:
    DB_PATH = _get_config_dir() / "tabrecall.db"

# Limits & Timeouts
_limits = _CONFIG.get("limits", {})
MAX_RETRIES = _limits.get("max_retries", 3)
INITIAL_BACKOFF = _limits.get("initial_backoff", 2)
MAX_BACKOFF = _limits.get("max_backoff", 30)

# Enrichment
_enrichment = _CONFIG.get("enrichment", {})
ENRICHMENT_WORKERS = _enrichment.get("workers", 2)
MAX_TAB_GROUPS = _enrichment.get("max_tab_groups", 5)

# Search
_search = _CONFIG.get("search", {})
SEARCH_RESULT_LIMIT = _search.get("result_limit", 10)
RERANK_TOP_N = _search.get("rerank_top_n", 3)

# Restore
MAX_TABS_PER_WINDOW = _CONFIG.get("restore", {}).get("max_tabs_per_window", 20)

# Providers
PROVIDERS = _CONFIG.get("api", {})

# Initial user settings
DEFAULT_SETTINGS = _CONFIG.get("defaults", {})

# Prompts
_prompts = _CONFIG["prompts"]
SUMMARIZE_TABS_PROMPT = _prompts.get(
    "summarize_tabs",
    "Summarize what the user was working on in these browser tabs:\n{tab_list}",
)
GROUP_TABS_PROMPT = _prompts.get(
    "group_tabs",
    (
        "Group these browser tabs into 2-{max_groups} topical groups. Return ONLY a "
        'JSON array of {{"name": str, "tabIndices": [int]}} objects.\n{tab_list}'
    ),
)
RERANK_SESSIONS_PROMPT = _prompts.get(
    "rerank_sessions",
    (
        'A user is searching for: "{query}"\n{session_list}\n'
        "Return ONLY a JSON array of the top {top_n} session numbers (1-{count})."
    ),
)
