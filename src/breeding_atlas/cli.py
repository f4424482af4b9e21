"""
Command-line interface for the application.

This module provides the main entry point for the CLI.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from breeding_atlas import __version__
from breeding_atlas.analysis.season_calendar import build_species_calendar
from breeding_atlas.config import get_settings
from breeding_atlas.exceptions import AtlasError
from breeding_atlas.flows.adjudicate import adjudicate_flow
from breeding_atlas.logging_config import configure_logging
from breeding_atlas.reference.tables import load_reference_tables
from breeding_atlas.store import DataStore


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="breeding-atlas",
        description="Vet and adjudicate breeding codes on atlas observations",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("info", help="Show application info")

    run_parser = subparsers.add_parser("run", help="Adjudicate raw observations in the data store")
    run_parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Data store directory (default: data_dir from settings)",
    )

    calendar_parser = subparsers.add_parser("calendar", help="Show a species' season phases")
    calendar_parser.add_argument("species", help="Species name as used in the reference tables")
    calendar_parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Data store directory (default: data_dir from settings)",
    )

    return parser


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    print(f"Application: {settings.app_name}")
    print(f"Version: {__version__}")
    print(f"Environment: {settings.app_env}")
    print(f"Data directory: {settings.data_dir}")
    print(f"Collection window: {settings.first_year}-{settings.last_year}")
    print(f"Debug: {settings.debug}")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Handle the 'run' command: adjudicate and save outputs."""
    settings = get_settings()
    data_dir = args.data_dir or settings.data_dir
    print(f"Adjudicating observations in {data_dir}...")
    try:
        summary = adjudicate_flow(data_dir=data_dir)
    except AtlasError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    for key, value in summary.items():
        print(f"  {key}: {value}")
    return 1 if summary.get("faults") else 0


def cmd_calendar(args: argparse.Namespace) -> int:
    """Handle the 'calendar' command: print one species' phase intervals."""
    settings = get_settings()
    store = DataStore(args.data_dir or settings.data_dir)
    try:
        tables = load_reference_tables(store, settings.escalation_threshold)
        anchors = tables.anchors.get(args.species)
        if anchors is None:
            print(f"No season anchors for {args.species!r}", file=sys.stderr)
            return 1
        calendar = build_species_calendar(anchors)
    except AtlasError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"{calendar.species}{' (wraps year end)' if calendar.wraps else ''}")
    for phase, days in calendar.describe().items():
        print(f"  {phase:<9} {days}")
    return 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    settings = get_settings()
    configure_logging("DEBUG" if args.debug or settings.debug else settings.log_level)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "info": cmd_info,
        "run": cmd_run,
        "calendar": cmd_calendar,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
