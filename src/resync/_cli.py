"""Resync CLI — resync mark / resync diff / resync clear.

Entry point for the ``resync`` command-line interface. ``mark`` is the
producer side of the marker file, meant for agent hooks::

    resync mark /abs/path/to/file.py
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from resync._errors import ResyncError, SnapshotError


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the resync CLI."""
    parser = argparse.ArgumentParser(
        prog="resync",
        description="Keep open editor documents in sync with externally changed files.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    parser.add_argument("--root", default=".", help="Project root (for config lookup)")
    parser.add_argument("--marker", default=None, help="Marker file (overrides config)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # resync mark
    mark_parser = subparsers.add_parser(
        "mark",
        help="Append changed paths to the marker file",
    )
    mark_parser.add_argument("paths", nargs="+", help="Changed files")

    # resync diff
    diff_parser = subparsers.add_parser(
        "diff",
        help="Print the changed line ranges between two files",
    )
    diff_parser.add_argument("old", help="Before")
    diff_parser.add_argument("new", help="After")

    # resync clear
    subparsers.add_parser(
        "clear",
        help="Truncate the marker file",
    )

    return parser


def _get_version() -> str:
    """Get the package version."""
    from resync import __version__

    return __version__


def _marker_path(args: argparse.Namespace) -> Path:
    from resync.config_loader import load_config

    marker = Path(args.marker) if args.marker else None
    return load_config(Path(args.root), marker_file=marker).marker_path


def _diff(old: str, new: str) -> int:
    from resync.content.differ import diff_lines
    from resync.content.store import read_snapshot

    try:
        before = read_snapshot(old)
        after = read_snapshot(new)
    except SnapshotError as exc:
        print(f"resync: {exc}", file=sys.stderr)
        return 1

    for hunk in diff_lines(before.lines, after.lines):
        if hunk.start_line == hunk.end_line:
            print(f"{hunk.start_line}\t{hunk.kind}")
        else:
            print(f"{hunk.start_line}-{hunk.end_line}\t{hunk.kind}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "diff":
        sys.exit(_diff(args.old, args.new))

    from resync.content.marker import MarkerFile

    try:
        marker = MarkerFile(_marker_path(args))
        if args.command == "mark":
            marker.append(args.paths)
        elif args.command == "clear":
            marker.consume()
    except (ResyncError, OSError) as exc:
        print(f"resync: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
