"""ibflog command-line tool."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from datetime import datetime
from enum import Enum, IntFlag
from typing import Any

from .alarms import ALARM_TYPES
from .decoder import RecordResult
from .errors import DecodeError
from .records import Bolus, LogRecord
from .storage import LogReader

# PDM exports carry this many header/profile records before the log stream.
DEFAULT_SKIP = 18


def _jsonable(value: Any) -> Any:
    if isinstance(value, IntFlag):
        return value.names()
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def record_to_dict(record: LogRecord) -> dict[str, Any]:
    """Flatten a record into JSON-friendly primitives."""
    out: dict[str, Any] = {"kind": record.kind}
    out.update(_jsonable(dataclasses.asdict(record.header)))
    if record.history is not None:
        out["flags"] = record.history.flags.names()
    if record.payload is not None:
        out.update(_jsonable(dataclasses.asdict(record.payload)))
    if isinstance(record.payload, Bolus):
        out["extended"] = record.payload.extended
    return out


def _format_record(n: int, record: LogRecord) -> str:
    fields = record_to_dict(record)
    kind = fields.pop("kind")
    fields_str = ", ".join(f"{k}={v}" for k, v in fields.items())
    return f"{n:5d}: {kind}: {fields_str}"


def _report_error(n: int, error: DecodeError) -> None:
    print(f"{n:5d}: error: {error}", file=sys.stderr)


def cmd_dump(args: argparse.Namespace) -> int:
    """Dump decoded log records to stdout."""
    with LogReader(args.file, skip=args.skip) as reader:
        result: RecordResult
        for n, result in enumerate(reader.records()):
            if result.error is not None:
                _report_error(n, result.error)
                if result.error.fatal:
                    return 1
                continue
            assert result.record is not None
            if args.json:
                print(json.dumps(record_to_dict(result.record)))
            else:
                print(_format_record(n, result.record))
    return 0


def cmd_frames(args: argparse.Namespace) -> int:
    """List raw frames without decoding them."""
    with LogReader(args.file) as reader:
        try:
            for n, frame in enumerate(reader.frames()):
                head = frame.payload[:8].hex()
                print(f"{n:5d}: size={frame.record_size:5d} "
                      f"checksum=0x{frame.checksum:04x} head={head}")
        except DecodeError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        print(f"trailing bytes: {reader.trailing}")
    return 0


def cmd_alarms(args: argparse.Namespace) -> int:
    """Print the alarm type catalog."""
    for a in ALARM_TYPES.values():
        stops = {True: "yes", False: "no", None: "?"}[a.stops_delivery]
        print(f"[{a.id:3d}] {a.name:<20s} stops={stops:<3s} {a.explanation}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="ibflog", description="IBF log decoder")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    # dump
    p_dump = sub.add_parser("dump", help="Decode and print log records")
    p_dump.add_argument("file", help="Path to .ibf file")
    p_dump.add_argument("--skip", type=int, default=DEFAULT_SKIP,
                        help=f"Leading frames to skip (default {DEFAULT_SKIP})")
    p_dump.add_argument("--json", action="store_true",
                        help="Print one JSON object per record")

    # frames
    p_frames = sub.add_parser("frames", help="List raw frames")
    p_frames.add_argument("file", help="Path to .ibf file")

    # alarms
    sub.add_parser("alarms", help="Show the alarm type catalog")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(name)s: %(message)s")

    if args.command == "dump":
        return cmd_dump(args)
    elif args.command == "frames":
        return cmd_frames(args)
    elif args.command == "alarms":
        return cmd_alarms(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
