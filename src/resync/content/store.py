"""Content store — last-known-good snapshot per tracked path.

The store is the only source of truth for "what did this file look like
before". Snapshots are small (line tuples of tracked text files) and are
retained for the lifetime of the engine; there is no eviction beyond
explicit removal.

Thread Safety:
    None. All access happens on the engine's control thread.

"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from resync._errors import SnapshotError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from resync._types import TrackedPath


@dataclass(frozen=True, slots=True)
class Snapshot:
    """The last trusted content of a tracked path.

    Attributes:
        lines: File content split into lines, without line terminators.
        captured_at_ms: File modification time in milliseconds when the
            snapshot was taken (0 if the file could not be stat'ed).

    """

    lines: tuple[str, ...]
    captured_at_ms: int


def split_lines(text: str) -> tuple[str, ...]:
    """Split file text into lines the way an editor buffer holds them.

    A trailing newline does not produce an extra empty line, and ``\\r\\n``
    terminators are stripped along with ``\\n``.
    """
    if not text:
        return ()
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return tuple(line.removesuffix("\r") for line in lines)


def mtime_ms(path: TrackedPath) -> int:
    """Modification time of ``path`` in milliseconds, or 0 if stat fails."""
    try:
        return os.stat(path).st_mtime_ns // 1_000_000
    except OSError:
        return 0


def read_snapshot(path: TrackedPath) -> Snapshot:
    """Read ``path`` from disk into a Snapshot.

    Raises:
        SnapshotError: The file is missing, unreadable, or not UTF-8 text.

    """
    try:
        with open(path, encoding="utf-8", newline="") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"cannot read {path}: {exc}"
        raise SnapshotError(msg) from exc
    return Snapshot(lines=split_lines(text), captured_at_ms=mtime_ms(path))


def snapshot_of(lines: Sequence[str], path: TrackedPath) -> Snapshot:
    """Build a Snapshot from in-memory lines, stamped with the file's mtime."""
    return Snapshot(lines=tuple(lines), captured_at_ms=mtime_ms(path))


class ContentStore:
    """Holds at most one Snapshot per tracked path."""

    __slots__ = ("_snapshots",)

    def __init__(self) -> None:
        self._snapshots: dict[TrackedPath, Snapshot] = {}

    def get(self, path: TrackedPath) -> Snapshot | None:
        return self._snapshots.get(path)

    def put(self, path: TrackedPath, snapshot: Snapshot) -> None:
        self._snapshots[path] = snapshot

    def remove(self, path: TrackedPath) -> Snapshot | None:
        """Drop the snapshot for ``path``, returning it if one existed."""
        return self._snapshots.pop(path, None)

    def clear(self) -> int:
        """Drop every snapshot and return how many were dropped."""
        count = len(self._snapshots)
        self._snapshots.clear()
        return count

    def __contains__(self, path: object) -> bool:
        return path in self._snapshots

    def __len__(self) -> int:
        return len(self._snapshots)

    def __iter__(self) -> Iterator[TrackedPath]:
        return iter(list(self._snapshots))
