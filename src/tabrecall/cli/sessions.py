"""Session-related CLI rendering for tabrecall."""

from datetime import datetime
from typing import Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tabrecall.restore import GroupedRestorePlan
from tabrecall.search import SearchResult
from tabrecall.storage.interface import GenerationState, Session

STATUS_STYLES = {
    GenerationState.IDLE: "dim",
    GenerationState.GENERATING: "yellow",
    GenerationState.COMPLETE: "green",
    GenerationState.ERROR: "red",
}


def format_timestamp(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M")


def _status_text(session: Session) -> str:
    style = STATUS_STYLES.get(session.generation_status.state, "dim")
    return f"[{style}]{escape(str(session.generation_status))}[/{style}]"


def _sessions_table(
    title: str, sessions: List[Session], scores: Optional[Dict[str, float]] = None
) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="green")
    table.add_column("Tabs", justify="right")
    table.add_column("Windows", justify="right")
    table.add_column("Status")
    if scores:
        table.add_column("Score", justify="right")
    table.add_column("Saved At", style="dim")

    for s in sessions:
        row = [
            s.id,
            escape(s.name) or "-",
            str(s.tab_count),
            str(s.window_count),
            _status_text(s),
        ]
        if scores:
            score = scores.get(s.id)
            row.append(f"{score:.2f}" if score is not None else "-")
        row.append(format_timestamp(s.timestamp))
        table.add_row(*row)
    return table


def show_sessions(console: Console, sessions: List[Session]) -> None:
    """List saved sessions."""
    if not sessions:
        console.print("No sessions found.")
        return
    console.print(_sessions_table(f"Saved Sessions ({len(sessions)})", sessions))


def show_session_detail(console: Console, session: Session) -> None:
    console.print(
        Panel(
            escape(session.context) if session.context else "[dim]No summary yet.[/dim]",
            title=f"{escape(session.name)} [dim]({session.id})[/dim]",
            subtitle=f"{format_timestamp(session.timestamp)} | {_status_text(session)}",
        )
    )

    table = Table(show_header=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Window", justify="right")
    table.add_column("Title", style="green")
    table.add_column("URL", style="blue", overflow="fold")
    for i, tab in enumerate(session.tabs, start=1):
        table.add_row(str(i), str(tab.window_index), escape(tab.title) or "-", escape(tab.url))
    console.print(table)

    if session.tab_groups:
        groups = Table(title="Tab Groups")
        groups.add_column("Group", style="magenta")
        groups.add_column("Tabs")
        for group in session.tab_groups:
            groups.add_row(escape(group.name), ", ".join(str(i) for i in group.tab_indices))
        console.print(groups)


def show_search_results(console: Console, query: str, result: SearchResult) -> None:
    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")
    if not result.results:
        console.print(f"No sessions match '{escape(query)}'.")
        return
    console.print(
        _sessions_table(
            f"Results for '{escape(query)}' ({result.method})", result.results, result.scores
        )
    )


def show_restore_plan(console: Console, plan) -> None:
    if isinstance(plan, GroupedRestorePlan):
        for i, window in enumerate(plan.windows, start=1):
            table = Table(title=f"Window {i}")
            table.add_column("Container", style="magenta")
            table.add_column("Colour")
            table.add_column("URL", style="blue", overflow="fold")
            for tab in window:
                table.add_row(escape(tab.container), tab.color, escape(tab.url))
            console.print(table)
        console.print(
            f"{plan.restored} tabs in {plan.windows_created} windows, "
            f"{len(plan.containers)} containers"
        )
        return

    for i, urls in enumerate(plan.windows, start=1):
        console.print(f"[bold]Window {i}[/bold]")
        for url in urls:
            console.print(f"  {escape(url)}")
    console.print(f"{plan.restored} tabs to restore, {plan.skipped} skipped")
