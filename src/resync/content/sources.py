"""Change sources — one ChangeEvent shape for every origin.

A change can reach the engine these ways:

- a filesystem watch event on a tracked path (no hunks),
- a path listed in the marker file (no hunks),
- an explicit announcement from an external caller (optional hunks),
- a manual recheck of every open document (no hunks).

Each origin is normalized here into a ``ChangeEvent`` with a canonical
absolute path, so nothing downstream needs to know where it came from.
"""

from __future__ import annotations

import sys
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from resync.content.differ import ChangeHunk, normalize_hunks
from resync.content.marker import canonical_path

if TYPE_CHECKING:
    from collections.abc import Iterable

    from resync._types import ChangeOrigin, TrackedPath
    from resync.content.watcher import FsChange


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A producer-agnostic notification that a tracked path changed.

    Attributes:
        path: Canonical absolute path.
        hunks: Precomputed hunks, or None when the engine must diff
            against the stored snapshot.
        observed_at: Control-loop time (seconds) the engine received it.
        origin: Which source produced the event.

    """

    path: TrackedPath
    hunks: tuple[ChangeHunk, ...] | None
    observed_at: float
    origin: ChangeOrigin = "watch"


# Announcement kinds -> hunk kinds. Deletions leave nothing to mark.
_ANNOUNCED_KINDS = {
    "add": "added",
    "added": "added",
    "modify": "modified",
    "modified": "modified",
}


def from_fs_change(change: FsChange, *, now: float) -> ChangeEvent | None:
    """Normalize a watcher change on a tracked document.

    Deletions are dropped: there is nothing on disk to reload.
    """
    if change.kind == "deleted":
        return None
    return ChangeEvent(path=canonical_path(change.path), hunks=None, observed_at=now)


def from_marker(paths: Iterable[TrackedPath], *, now: float) -> list[ChangeEvent]:
    """One event per path listed in the marker file, in order."""
    return [
        ChangeEvent(path=canonical_path(p), hunks=None, observed_at=now, origin="marker")
        for p in paths
    ]


def from_recheck(path: TrackedPath, *, now: float) -> ChangeEvent:
    """An open document found out of sync with the disk by a manual recheck."""
    return ChangeEvent(path=canonical_path(path), hunks=None, observed_at=now, origin="recheck")


def from_announcement(
    path: str,
    hunks: Iterable[Mapping[str, object]] | None,
    *,
    now: float,
) -> ChangeEvent:
    """Normalize an announced change.

    ``hunks`` items look like ``{"start_line": 3, "end_line": 5, "kind":
    "modify"}`` (``startLine``/``endLine`` are accepted too). Malformed
    items and ``delete`` hunks are skipped; if nothing usable remains the
    event carries no hunks and the engine diffs instead.

    """
    parsed = parse_announced_hunks(hunks) if hunks else ()
    return ChangeEvent(
        path=canonical_path(path),
        hunks=parsed or None,
        observed_at=now,
        origin="announce",
    )


def parse_announced_hunks(items: Iterable[Mapping[str, object]]) -> tuple[ChangeHunk, ...]:
    """Convert announced hunk mappings into sorted, non-overlapping hunks."""
    hunks: list[ChangeHunk] = []
    for item in items:
        if not isinstance(item, Mapping):
            print(f"  Announced hunk skipped: {item!r}", file=sys.stderr)
            continue
        kind = _ANNOUNCED_KINDS.get(str(item.get("kind", "modify")))
        if kind is None:
            continue
        start = item.get("start_line", item.get("startLine"))
        end = item.get("end_line", item.get("endLine", start))
        try:
            hunks.append(ChangeHunk(start_line=int(start), end_line=int(end), kind=kind))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            print(f"  Announced hunk skipped: {dict(item)!r}", file=sys.stderr)
    return normalize_hunks(hunks)
