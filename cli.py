#!/usr/bin/env python3
"""Command line entry point: one-shot clock commands, or the TUI when no command is given."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence

from rich.console import Console
from rich.logging import RichHandler

import display
import storage
from export import export_history
from models import ClockedInError
from utils import parse_clock_time, resolve_clock_time

logger = logging.getLogger("cli")

# Command name -> service operation
CLOCK_COMMANDS = {
    "clock-in": "clock_in",
    "clock-out": "clock_out",
    "clock-out-end-day": "clock_out_and_end_day",
    "clock-out-end-week": "clock_out_and_end_week",
}

EXIT_REJECTED = 1
EXIT_STORAGE = 2


def configure_logging(level: str | int | None = None, log_file: Path | None = None) -> None:
    """Configure logging once for all modules.

    Console commands log through rich. The TUI owns the terminal, so it logs to a file.
    """
    if level is None:
        level = os.environ.get("CLOCKEDIN_LOG_LEVEL", "WARNING").upper()

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    else:
        handler = RichHandler(console=Console(stderr=True), show_path=False)

    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)


def _clock_time(val: str):
    try:
        return parse_clock_time(val)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clockedin",
        description="Track clock-in/clock-out events against the work-time policy.",
    )
    parser.add_argument("--db", type=Path, help="state file (default: $CLOCKEDIN_DB)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log state transitions")

    subparsers = parser.add_subparsers(dest="command")
    for name in CLOCK_COMMANDS:
        sub = subparsers.add_parser(name, help=f"{name.replace('-', ' ')} now or at --time")
        sub.add_argument("--time", type=_clock_time, help="time of day, HH:MM (default: now)")
    subparsers.add_parser("status", help="show the balance, this week and recommendations")
    export_parser = subparsers.add_parser("export", help="export the history to an .xlsx workbook")
    export_parser.add_argument("output", type=Path)
    subparsers.add_parser("db-info", help="show where the state is stored")
    return parser


def db_info(store: storage.StateStore, console: Console) -> None:
    path = store.path
    console.print(f"Database: {path}")
    if path.exists():
        mtime = datetime.fromtimestamp(path.stat().st_mtime)
        size = path.stat().st_size
        console.print(f"Modified: {mtime.strftime('%Y-%m-%d %H:%M:%S')}")
        console.print(f"Size: {size:,} bytes")
    else:
        console.print("Status: Does not exist (will be created on first save)")


def run_command(
    args: argparse.Namespace,
    store: storage.StateStore,
    console: Console,
    clock: Callable[[], datetime] = datetime.now,
) -> int:
    """Run one command against the persisted state and return the exit status."""
    if args.command == "db-info":
        db_info(store, console)
        return 0

    service = storage.load_service(store)
    now = clock()

    if args.command in CLOCK_COMMANDS:
        operation = CLOCK_COMMANDS[args.command]
        when = resolve_clock_time(args.time, now)
        try:
            getattr(service, operation)(when)
        except ClockedInError as exc:
            console.print(f"[bold red]{exc}[/]")
            return EXIT_REJECTED
        storage.save_service(store, service)
        console.print(f"[bold]{args.command}[/] at {when:%Y-%m-%d %H:%M}")
    elif args.command == "export":
        path = export_history(service, args.output)
        console.print(f"Exported history to {path}")
        return 0

    console.print(display.summary_text(service, now))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    store = storage.get_store(args.db)
    level = "INFO" if args.verbose else None

    if args.command is None:
        from app import run_app

        configure_logging(level, log_file=store.path.with_suffix(".log"))
        try:
            return run_app(store)
        except storage.StorageOpenError as exc:
            logger.error("Unable to open state: %s", exc)
            return EXIT_STORAGE

    configure_logging(level)
    try:
        return run_command(args, store, Console())
    except storage.StorageError as exc:
        logger.error("Fatal storage error: %s", exc)
        return EXIT_STORAGE


if __name__ == "__main__":
    sys.exit(main())
