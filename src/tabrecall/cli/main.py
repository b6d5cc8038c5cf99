"""Command-line interface for tabrecall."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from rich.console import Console
from rich.markup import escape

from tabrecall.api import TabRecallClient
from tabrecall.cli.sessions import (
    show_restore_plan,
    show_search_results,
    show_session_detail,
    show_sessions,
)
from tabrecall.config import LOG_FILE, LOG_LEVEL
from tabrecall.core.exceptions import ConfigurationError, TabRecallError
from tabrecall.logger import setup_logging
from tabrecall.settings import parse_setting_value

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="tabrecall",
        description="Save browser tab sessions and find them again later.",
    )
    parser.add_argument("--db", help="Path to the database file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log at DEBUG level"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    capture = sub.add_parser("capture", help="Save a session from a window snapshot")
    capture.add_argument("snapshot", help="JSON file with the browser's windows and tabs")
    capture.add_argument("--name", help="Session name")
    capture.add_argument(
        "--no-enrich", action="store_true", help="Do not generate a summary"
    )

    sub.add_parser("list", help="List saved sessions")

    show = sub.add_parser("show", help="Show one session")
    show.add_argument("session_id")

    search = sub.add_parser("search", help="Search saved sessions")
    search.add_argument("query", nargs="+")

    enrich = sub.add_parser("enrich", help="(Re)generate summary, groups and embedding")
    enrich.add_argument("session_id")

    rename = sub.add_parser("rename", help="Rename a session")
    rename.add_argument("session_id")
    rename.add_argument("name")

    delete = sub.add_parser("delete", help="Delete a session")
    delete.add_argument("session_id")

    restore = sub.add_parser("restore", help="Show which tabs a restore would open")
    restore.add_argument("session_id")
    restore.add_argument(
        "--groups", action="store_true", help="Restore tab groups as containers"
    )

    export = sub.add_parser("export", help="Export sessions as JSON")
    export.add_argument("file", nargs="?", help="Output file (default: stdout)")

    import_cmd = sub.add_parser("import", help="Import sessions from a JSON export")
    import_cmd.add_argument("file")

    clear = sub.add_parser("clear", help="Delete every session")
    clear.add_argument("--yes", action="store_true", help="Confirm deletion")

    settings = sub.add_parser("settings", help="Show or change settings")
    settings.add_argument(
        "--set",
        dest="updates",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Change a setting (repeatable)",
    )

    return parser.parse_args(argv)


def _read_json(path: str) -> Any:
    try:
        return json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    except OSError as exc:
        raise TabRecallError(f"Cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise TabRecallError(f"Invalid JSON in {path}: {exc}") from exc


def _settings_command(client: TabRecallClient, console: Console, updates: List[str]) -> None:
    settings = client.get_settings()
    if updates:
        changes = {}
        for item in updates:
            key, sep, value = item.partition("=")
            if not sep:
                raise ConfigurationError(f"Expected KEY=VALUE, got '{item}'")
            key = key.strip()
            changes[key] = parse_setting_value(key, value)
        settings = client.save_settings(settings.with_updates(**changes))

    shown = settings.to_dict()
    if "apiKey" in shown:
        shown["apiKey"] = "***"
    console.print_json(json.dumps(shown))


def run_command(args: argparse.Namespace, client: TabRecallClient, console: Console) -> None:
    command = args.command

    if command == "capture":
        result = client.capture_session(
            _read_json(args.snapshot),
            name=args.name,
            enrich=False if args.no_enrich else None,
        )
        console.print(
            f"Saved session [cyan]{result.session.id}[/cyan] "
            f"({result.session.tab_count} tabs)"
        )
        if result.enrichment is not None:
            outcome = result.enrichment.result()
            console.print(f"Enrichment: {outcome.status}")
    elif command == "list":
        show_sessions(console, client.list_sessions())
    elif command == "show":
        show_session_detail(console, client.get_session(args.session_id))
    elif command == "search":
        query = " ".join(args.query)
        show_search_results(console, query, client.search(query))
    elif command == "enrich":
        outcome = client.enrich_session(args.session_id, wait=True)
        console.print(f"Enrichment: {outcome.status}")
        if outcome.context:
            console.print(outcome.context)
    elif command == "rename":
        session = client.rename_session(args.session_id, args.name)
        console.print(f"Renamed {session.id} to '{escape(session.name)}'")
    elif command == "delete":
        client.delete_session(args.session_id)
        console.print(f"Deleted session {args.session_id}")
    elif command == "restore":
        show_restore_plan(console, client.plan_restore(args.session_id, grouped=args.groups))
    elif command == "export":
        payload = json.dumps(client.export_sessions(), indent=2)
        if args.file:
            Path(args.file).expanduser().write_text(payload, encoding="utf-8")
            console.print(f"Exported sessions to {args.file}")
        else:
            print(payload)
    elif command == "import":
        try:
            imported = client.import_sessions(_read_json(args.file))
        except ValueError as exc:
            raise TabRecallError(str(exc)) from exc
        console.print(f"Imported {imported} sessions")
    elif command == "clear":
        if not args.yes:
            raise TabRecallError("Refusing to delete all sessions without --yes")
        console.print(f"Deleted {client.clear_sessions()} sessions")
    elif command == "settings":
        _settings_command(client, console, args.updates)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    log_path = setup_logging("DEBUG" if args.verbose else LOG_LEVEL, LOG_FILE)
    logger.debug(f"Running command: {args.command}")

    console = Console()
    if args.verbose and log_path is not None:
        console.print(f"[dim]Debug log: {escape(str(log_path))}[/dim]")
    try:
        with TabRecallClient(db_path=args.db) as client:
            run_command(args, client, console)
    except (TabRecallError, ValueError) as exc:
        logger.error(f"Command {args.command} failed: {exc}")
        print(f"Error: {exc}")
        sys.exit(1)
