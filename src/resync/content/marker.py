"""Marker file — a change-notification channel written by the agent.

The marker file is plain text with one absolute path per line,
separated by ``\\n`` or ``\\r\\n``. The agent appends to it after each
write; the engine reads it when its modification time strictly
increases, truncates it, and reconciles every listed path.

Lines that cannot be interpreted as an absolute path are skipped one by
one; well-formed lines in the same batch are still processed.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

from resync._errors import MarkerError

if TYPE_CHECKING:
    from pathlib import Path

    from resync._types import TrackedPath


def canonical_path(path: str | os.PathLike[str]) -> TrackedPath:
    """Normalize ``path`` to the absolute form used for every lookup."""
    return os.path.abspath(os.path.expanduser(os.fspath(path)))


def parse_marker_line(raw: bytes) -> TrackedPath | None:
    """Interpret one raw marker line.

    Returns None for blank lines.

    Raises:
        MarkerError: The line is not UTF-8, contains control characters,
            or is not an absolute path.

    """
    try:
        text = raw.decode("utf-8").strip()
    except UnicodeDecodeError as exc:
        msg = f"undecodable marker line: {raw!r}"
        raise MarkerError(msg) from exc
    if not text:
        return None
    if any(ord(ch) < 0x20 for ch in text):
        msg = f"control characters in marker line: {text!r}"
        raise MarkerError(msg)
    expanded = os.path.expanduser(text)
    if not os.path.isabs(expanded):
        msg = f"marker line is not an absolute path: {text!r}"
        raise MarkerError(msg)
    return canonical_path(expanded)


def parse_marker_content(content: bytes) -> list[TrackedPath]:
    """Parse marker content into canonical paths, in file order.

    Duplicates are kept; collapsing them is the debouncer's job.

    """
    paths: list[TrackedPath] = []
    for raw in content.splitlines():
        try:
            path = parse_marker_line(raw)
        except MarkerError as exc:
            print(f"  Marker skipped: {exc}", file=sys.stderr)
            continue
        if path is not None:
            paths.append(path)
    return paths


class MarkerFile:
    """Reads and clears the marker file when it changes.

    Args:
        path: Location of the marker file.

    """

    __slots__ = ("_last_mtime_ns", "_path")

    def __init__(self, path: Path) -> None:
        self._path = path
        self._last_mtime_ns = 0

    @property
    def path(self) -> Path:
        return self._path

    def ensure_exists(self) -> None:
        """Create the marker file (and its directory) if absent.

        Records the current mtime so content present before the engine
        started is consumed on the first change, not treated as new.
        """
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "ab"):
                pass
            self._last_mtime_ns = self._path.stat().st_mtime_ns
        except OSError as exc:
            print(f"  Marker unavailable: {self._path}: {exc}", file=sys.stderr)

    def poll(self) -> list[TrackedPath]:
        """Consume the marker file if it changed since the last poll.

        Returns the listed paths, or an empty list when the mtime did not
        strictly increase or the file could not be read. Read failures are
        transient and retried on the next change.

        """
        try:
            mtime_ns = self._path.stat().st_mtime_ns
        except OSError:
            return []
        if mtime_ns <= self._last_mtime_ns:
            return []
        self._last_mtime_ns = mtime_ns
        return self.consume()

    def consume(self) -> list[TrackedPath]:
        """Read and truncate the marker file unconditionally."""
        try:
            content = self._path.read_bytes()
        except OSError as exc:
            print(f"  Marker read error: {exc}", file=sys.stderr)
            return []
        if not content:
            return []
        try:
            with open(self._path, "wb"):
                pass
            # Our own truncation must not look like a new write.
            self._last_mtime_ns = self._path.stat().st_mtime_ns
        except OSError as exc:
            print(f"  Marker truncate error: {exc}", file=sys.stderr)
        return parse_marker_content(content)

    def append(self, paths: list[str]) -> None:
        """Append ``paths`` (canonicalized) to the marker file.

        This is the producer side, used by the ``resync mark`` command.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "a", encoding="utf-8") as f:
            for path in paths:
                f.write(canonical_path(path) + "\n")
