"""Command-line entry for icsengine.

Sub-commands work on one ICS file (``-`` reads stdin):

    parse   print parsed events and warnings as JSON
    dedup   report duplicates inside the file
    export  re-generate the file's ICS on stdout
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from .config_loader import Config, load_config
from .duplicate_detection import deduplicate_events
from .event_parser import parse_ics_content
from .exceptions import ICSConfigError, ICSError, ICSImportError
from .generator import generate_ics
from .ics_logging import configure_logging
from .import_service import parsed_to_event_data, validate_file_size
from .models import CalendarData, ParseResult

logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the icsengine CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="icsengine",
        description="icsengine - parse, deduplicate and generate iCalendar files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m icsengine parse calendar.ics              # Events and warnings as JSON
  python -m icsengine dedup calendar.ics              # Report duplicate events
  python -m icsengine export calendar.ics --name Team # Normalized ICS on stdout
        """,
    )
    parser.add_argument("--config", metavar="PATH", help="Path to a YAML config file")
    parser.add_argument("--log-level", metavar="LEVEL", help="Log level (default: from config)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_cmd = subparsers.add_parser("parse", help="Parse an ICS file and print JSON")
    parse_cmd.add_argument("file", help="ICS file path, or - for stdin")

    dedup_cmd = subparsers.add_parser("dedup", help="Report duplicate events in an ICS file")
    dedup_cmd.add_argument("file", help="ICS file path, or - for stdin")

    export_cmd = subparsers.add_parser("export", help="Re-generate an ICS file")
    export_cmd.add_argument("file", help="ICS file path, or - for stdin")
    export_cmd.add_argument("--name", help="Calendar name (default: file name)")

    return parser


def _read_content(file_arg: str, cfg: Config) -> str:
    data = sys.stdin.buffer.read() if file_arg == "-" else Path(file_arg).read_bytes()
    validate_file_size(data, cfg.max_file_size)
    return data.decode("utf-8-sig")


def _cmd_parse(result: ParseResult) -> None:
    payload = {
        "events": [event.model_dump(mode="json", by_alias=True) for event in result.events],
        "errors": result.errors,
    }
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _cmd_dedup(result: ParseResult, cfg: Config) -> None:
    dedup = deduplicate_events(result.events, cfg.detection_config())
    print(f"unique: {len(dedup.unique)}")
    print(f"duplicates: {len(dedup.duplicates)}")
    for duplicate, original in dedup.pairs:
        print(
            f'  - "{duplicate.title}" at {duplicate.start_date.isoformat()} '
            f'duplicates "{original.title}"'
        )


def _cmd_export(result: ParseResult, cfg: Config, name: str) -> None:
    events = []
    for index, event in enumerate(result.events):
        try:
            events.append(parsed_to_event_data(event, f"event-{index}"))
        except ICSImportError as e:
            logger.warning(f'Skipping event "{event.title}": {e}')
    ics = generate_ics(
        CalendarData(name=name, events=events), prodid=cfg.prodid, uid_domain=cfg.uid_domain
    )
    sys.stdout.write(ics)


def main(argv: Optional[list[str]] = None) -> int:
    """Run the icsengine CLI.

    Returns:
        Process exit code: 1 when the file could not be parsed at all, 0 otherwise
    """
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config)
    except ICSConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    configure_logging(args.log_level or cfg.log_level, debug_mode=args.debug)

    try:
        content = _read_content(args.file, cfg)
    except (OSError, UnicodeDecodeError, ICSError) as e:
        print(f"Unable to read {args.file}: {e}", file=sys.stderr)
        return 1

    result = parse_ics_content(content)

    if args.command == "parse":
        _cmd_parse(result)
    elif result.is_fatal:
        print(f"Unable to parse ICS file: {', '.join(result.errors)}", file=sys.stderr)
    elif args.command == "dedup":
        _cmd_dedup(result, cfg)
    else:
        name = args.name or ("stdin" if args.file == "-" else Path(args.file).stem)
        _cmd_export(result, cfg, name)

    return 1 if result.is_fatal else 0


if __name__ == "__main__":
    sys.exit(main())
