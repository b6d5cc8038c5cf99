"""Tests for building sessions from window snapshots."""

from datetime import datetime

import pytest

from tabrecall.capture import build_session
from tabrecall.storage import GenerationStatus

SNAPSHOT = [
    {
        "id": 11,
        "focused": False,
        "type": "normal",
        "tabs": [
            {"url": "https://docs.python.org", "title": "Python", "active": True},
            {"url": "https://pypi.org", "title": "PyPI", "favIconUrl": "https://pypi.org/ico"},
        ],
    },
    {
        "id": 12,
        "focused": True,
        "type": "normal",
        "tabs": [{"url": "https://news.example", "title": "News"}],
    },
]


def test_multi_window_capture_flattens_tabs():
    now = datetime(2024, 3, 1, 9, 30, 0)

    session = build_session(SNAPSHOT, now=now)

    assert session.tab_count == 3
    assert session.window_count == 2
    assert [tab.window_index for tab in session.tabs] == [0, 0, 1]
    assert session.tabs[0].active is True
    assert session.tabs[1].fav_icon_url == "https://pypi.org/ico"
    assert [(w.window_id, w.tab_count, w.focused) for w in session.windows] == [
        (11, 2, False),
        (12, 1, True),
    ]
    assert session.name == "Session 2024-03-01 09:30:00"
    assert session.timestamp == int(now.timestamp() * 1000)
    assert session.generation_status == GenerationStatus.idle()
    assert session.context is None


def test_single_window_capture_uses_focused_window():
    session = build_session(SNAPSHOT, name="Morning", multi_window=False)

    assert session.name == "Morning"
    assert [tab.url for tab in session.tabs] == ["https://news.example"]
    assert session.tabs[0].window_index == 0
    assert session.windows == []
    assert session.window_count == 1


def test_single_window_capture_defaults_to_first_window():
    snapshot = [dict(window, focused=False) for window in SNAPSHOT]

    session = build_session(snapshot, multi_window=False)

    assert [tab.title for tab in session.tabs] == ["Python", "PyPI"]


def test_accepts_wrapped_snapshot_and_generates_unique_ids():
    first = build_session({"windows": SNAPSHOT})
    second = build_session({"windows": SNAPSHOT})

    assert first.id != second.id


def test_rejects_non_list_snapshot():
    with pytest.raises(ValueError, match="list of windows"):
        build_session({"tabs": []})
