"""Tests for restore planning."""

import pytest

from tabrecall.core.exceptions import RestoreError
from tabrecall.restore import (
    CONTAINER_COLORS,
    is_restorable_url,
    plan_grouped_restore,
    plan_restore,
)
from tabrecall.storage import WindowInfo


@pytest.mark.parametrize(
    "url",
    [
        "about:blank",
        "chrome://settings",
        "CHROME://extensions",
        "edge://flags",
        "moz-extension://abc/page.html",
        "chrome-extension://abc/popup.html",
        "firefox:home",
        "view-source:https://example.com",
        "",
    ],
)
def test_restricted_urls_are_not_restorable(url):
    assert is_restorable_url(url) is False


def test_regular_urls_are_restorable():
    assert is_restorable_url("https://example.com")
    assert is_restorable_url("file:///tmp/notes.txt")


def test_single_window_plan_skips_restricted(make_session):
    session = make_session(urls=["https://a.example", "chrome://newtab", "https://b.example"])

    plan = plan_restore(session)

    assert plan.windows == [["https://a.example", "https://b.example"]]
    assert plan.restored == 2
    assert plan.skipped == 1


def test_single_window_plan_with_nothing_restorable(make_session):
    session = make_session(urls=["about:blank", "chrome://newtab"])

    with pytest.raises(RestoreError, match="No valid URLs to restore"):
        plan_restore(session)


def test_multi_window_plan_keeps_windows_and_skips_empty_ones(make_session):
    session = make_session(
        urls=["https://a.example", "about:blank", "https://c.example", "https://d.example"],
        window_indices=[0, 1, 2, 2],
        windows=[WindowInfo(window_id=i) for i in range(3)],
    )

    plan = plan_restore(session)

    assert plan.windows == [["https://a.example"], ["https://c.example", "https://d.example"]]
    assert plan.restored == 3
    assert plan.skipped == 1


def test_grouped_plan_requires_groups(make_session):
    with pytest.raises(RestoreError, match="no tab groups"):
        plan_grouped_restore(make_session())


def test_grouped_plan_assigns_cycling_colors(make_session):
    urls = [f"https://site{i}.example" for i in range(1, 10)]
    groups = [(f"G{i}", [i]) for i in range(1, 10)]
    session = make_session(urls=urls, tab_groups=groups)

    plan = plan_grouped_restore(session)

    colors = [tab.color for window in plan.windows for tab in window]
    assert colors[:8] == list(CONTAINER_COLORS)
    assert colors[8] == CONTAINER_COLORS[0]
    assert plan.containers == [f"G{i}" for i in range(1, 10)]


def test_grouped_plan_packs_groups_into_windows(make_session):
    urls = [f"https://site{i}.example" for i in range(1, 8)]
    session = make_session(
        urls=urls,
        tab_groups=[("A", [1, 2, 3]), ("B", [4, 5]), ("C", [6, 7]), ("Empty", [99])],
    )

    plan = plan_grouped_restore(session, max_tabs_per_window=5)

    assert [[tab.container for tab in window] for window in plan.windows] == [
        ["A", "A", "A", "B", "B"],
        ["C", "C"],
    ]
    assert plan.restored == 7
    assert plan.windows_created == 2


def test_grouped_plan_oversized_group_gets_own_window(make_session):
    urls = [f"https://site{i}.example" for i in range(1, 5)]
    session = make_session(urls=urls, tab_groups=[("Small", [1]), ("Big", [2, 3, 4])])

    plan = plan_grouped_restore(session, max_tabs_per_window=2)

    assert [len(window) for window in plan.windows] == [1, 3]
