#!/usr/bin/env python3
"""
CLI entry point for the record store.

Usage:
    recordstore sync data/users.csv
    recordstore create users.csv --id 3 --email c@x.com --name C
    recordstore patch users.csv --id 3 --email new@x.com
    recordstore delete users.csv --id 3
    recordstore describe users.csv
    recordstore --backend file --config config/recordstore.yaml list
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import RecordStoreConfig
from .core.exceptions import RecordStoreError
from .core.logging import configure_logging
from .engine import RecordStoreEngine
from .storage import BACKENDS, create_snapshot_store_from_config


logger = logging.getLogger(__name__)


def setup_logging(config: RecordStoreConfig, verbose: bool = False) -> None:
    """Configure logging from config, with --verbose forcing DEBUG."""
    logging_config = config.get_logging_config()
    level_name = "DEBUG" if verbose else str(logging_config.get("level", "INFO")).upper()

    configure_logging(
        level=getattr(logging, level_name, logging.INFO),
        structured=bool(logging_config.get("structured", False)),
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="recordstore",
        description="Record store snapshot CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="Path to configuration YAML file")
    parser.add_argument("--backend", choices=BACKENDS, help="Override the configured backend")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    sync = commands.add_parser("sync", help="Upload a snapshot file and print its records")
    sync.add_argument("file", type=Path, help="Snapshot file to upload")
    sync.add_argument("--snapshot", help="Snapshot name (default: the file name)")

    for command, help_text in (
        ("records", "Print the stored records of a snapshot"),
        ("describe", "Print snapshot metadata"),
    ):
        sub = commands.add_parser(command, help=help_text)
        sub.add_argument("snapshot", help="Snapshot name")

    commands.add_parser("list", help="List stored snapshots, newest first")

    for command, help_text, required in (
        ("create", "Create a record", True),
        ("update", "Replace email and name of a record", True),
        ("patch", "Change only the given fields of a record", False),
    ):
        sub = commands.add_parser(command, help=help_text)
        _add_mutation_args(sub)
        sub.add_argument("--email", required=required, help="Email address")
        sub.add_argument("--name", required=required, help="Display name")

    delete = commands.add_parser("delete", help="Delete a record")
    _add_mutation_args(delete)

    return parser


def _add_mutation_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("snapshot", help="Snapshot name")
    parser.add_argument("--id", type=int, required=True, dest="record_id", help="Record id")
    parser.add_argument(
        "--file",
        type=Path,
        help="Snapshot content to use if the snapshot is not stored yet",
    )


def run_command(engine: RecordStoreEngine, args: argparse.Namespace) -> dict:
    """Dispatch a parsed command to the engine and return the JSON payload."""
    if args.command == "sync":
        name = args.snapshot or args.file.name
        return engine.sync_snapshot(name, args.file.read_bytes()).to_dict()

    if args.command == "records":
        records = engine.get_records(args.snapshot)
        return {
            "snapshot": args.snapshot,
            "count": len(records),
            "records": [r.to_dict() for r in records],
        }

    if args.command == "describe":
        return engine.describe(args.snapshot).to_dict()

    if args.command == "list":
        return {"snapshots": [info.to_dict() for info in engine.list_snapshots()]}

    raw = args.file.read_bytes() if args.file else None

    if args.command == "create":
        result = engine.create_record(args.snapshot, args.record_id, args.email, args.name, raw=raw)
    elif args.command == "update":
        result = engine.full_update(args.snapshot, args.record_id, args.email, args.name, raw=raw)
    elif args.command == "patch":
        result = engine.partial_update(
            args.snapshot, args.record_id, email=args.email, name=args.name, raw=raw
        )
    else:
        result = engine.delete_record(args.snapshot, args.record_id, raw=raw)

    return result.to_dict()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    load_dotenv()
    config = RecordStoreConfig(config_path=args.config)
    setup_logging(config, verbose=args.verbose)

    try:
        store = create_snapshot_store_from_config(config, backend=args.backend)
    except RecordStoreError as e:
        print(json.dumps({"error": str(e)}), file=sys.stderr)
        return 1

    logger.debug(f"Using snapshot store: {store.get_name()}")

    with store:
        engine = RecordStoreEngine(store)
        try:
            payload = run_command(engine, args)
        except (RecordStoreError, ValueError, OSError) as e:
            print(json.dumps({"error": str(e)}), file=sys.stderr)
            return 1

    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
