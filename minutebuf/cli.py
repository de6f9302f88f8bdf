"""Command line entry point for replaying observations through the buffer."""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Iterator, Mapping, Sequence

from .config_loader import load_config
from .publishers import MemoryPublisher
from .services import MetricBuffer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="minutebuf helper CLI")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log commit outcomes at debug level",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser(
        "replay",
        help="Aggregate observations from an NDJSON file and flush them once",
    )
    replay.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to the YAML configuration file",
    )
    replay.add_argument(
        "--input",
        type=Path,
        required=True,
        help="NDJSON file, one observation object per line",
    )
    replay.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the reduced batches instead of publishing them",
    )

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "replay":
        return _command_replay(args)

    parser.error("unknown command")
    return 1


def _command_replay(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    # replay flushes exactly once, never on a timer
    config.buffer = dataclasses.replace(config.buffer, autostart=False)

    memory = MemoryPublisher() if args.dry_run else None
    if memory is not None:
        buffer = MetricBuffer(config.buffer, publisher=memory)
    else:
        buffer = MetricBuffer.from_config(config)

    rejected = 0
    with buffer:
        for line_no, line in _read_lines(args.input):
            try:
                entry = _parse_observation(line)
                buffer.aggregator.record(
                    entry.get("namespace"),
                    entry.get("name"),
                    entry.get("value"),
                    entry.get("unit"),
                    entry.get("dimensions"),
                )
            except ValueError as exc:
                rejected += 1
                print(f"line {line_no}: {exc}", file=sys.stderr)
        report = buffer.flush()

    output = report.to_dict()
    output["rejected"] = rejected
    if memory is not None:
        output["published"] = [batch.to_dict() for batch in memory.batches]
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 1 if report.failures else 0


def _read_lines(path: Path) -> Iterator[tuple[int, str]]:
    with path.open("r", encoding="utf-8") as handle:
        for line_no, line in enumerate(handle, start=1):
            line = line.strip()
            if line:
                yield line_no, line


def _parse_observation(line: str) -> Mapping[str, object]:
    entry = json.loads(line)
    if not isinstance(entry, Mapping):
        raise ValueError("expected a JSON object")
    return entry


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
