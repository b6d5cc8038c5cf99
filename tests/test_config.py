from pathlib import Path

import pytest

from tabrecall.config import (
    DEFAULT_SETTINGS,
    GROUP_TABS_PROMPT,
    MAX_TABS_PER_WINDOW,
    PROVIDERS,
    RERANK_SESSIONS_PROMPT,
    RERANK_TOP_N,
    SEARCH_RESULT_LIMIT,
    SUMMARIZE_TABS_PROMPT,
)
from tabrecall.config.loader import load_config, merge


def test_bundled_defaults():
    assert SEARCH_RESULT_LIMIT == 10
    assert RERANK_TOP_N == 3
    assert MAX_TABS_PER_WINDOW == 20
    assert DEFAULT_SETTINGS["provider"] == "anthropic"
    assert DEFAULT_SETTINGS["search_sensitivity"] == 7


def test_providers_config():
    assert PROVIDERS["anthropic"]["default_model"] == "claude-3-haiku-20240307"
    assert "embeddings_url" in PROVIDERS["openai"]
    for config in PROVIDERS.values():
        assert config["url"].startswith("https://")
        assert config["api_key_env"]


def test_prompts_format_with_expected_placeholders():
    assert "1. T (u)" in SUMMARIZE_TABS_PROMPT.format(tab_list="1. T (u)")
    grouped = GROUP_TABS_PROMPT.format(tab_list="tabs", max_groups=5)
    assert '"tabIndices"' in grouped
    assert "2-5" in grouped
    ranked = RERANK_SESSIONS_PROMPT.format(query="q", session_list="s", top_n=3, count=4)
    assert '"q"' in ranked


def test_merge_is_deep():
    base = {"general": {"log_level": "INFO", "request_timeout": 60}, "api": {}}
    merge(base, {"general": {"log_level": "DEBUG"}, "api": {"x": {"url": "u"}}})

    assert base == {
        "general": {"log_level": "DEBUG", "request_timeout": 60},
        "api": {"x": {"url": "u"}},
    }


def test_user_config_overrides_bundled():
    config_dir = Path.home() / ".config" / "tabrecall"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "general.toml").write_text("[search]\nresult_limit = 25\n")

    config = load_config()

    assert config["search"]["result_limit"] == 25
    assert config["search"]["rerank_top_n"] == 3


def test_invalid_user_config_exits(capsys):
    config_dir = Path.home() / ".config" / "tabrecall"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "api.toml").write_text("[api\nbroken")

    with pytest.raises(SystemExit):
        load_config()

    assert "Invalid configuration file" in capsys.readouterr().err
