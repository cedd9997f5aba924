"""Pending changes — what changed in paths that could not be reconciled yet.

Two situations leave a change un-applied:

- the file is not open: line numbers accumulate (by union) until the
  document is opened, or ``pending`` marks "changed, lines unknown" when
  there was no snapshot to diff against;
- an agent session is active: the document's pre-session content is kept
  as a baseline so the flush diff spans the whole session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from resync._types import TrackedPath


@dataclass(slots=True)
class PendingChange:
    """Per-path accumulator for un-reconciled changes.

    Attributes:
        lines: Changed line numbers; only ever grows until consumed.
        pending: Whole file changed while closed, no line detail available.
        last_touched: Control-loop time of the latest contribution.
        baseline: Document content captured on the first touch of a session.

    """

    lines: set[int] = field(default_factory=set)
    pending: bool = False
    last_touched: float = 0.0
    baseline: tuple[str, ...] | None = None

    @property
    def is_empty(self) -> bool:
        return not self.lines and not self.pending and self.baseline is None


class PendingChanges:
    """Table of PendingChange entries keyed by path."""

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: dict[TrackedPath, PendingChange] = {}

    def get(self, path: TrackedPath) -> PendingChange | None:
        return self._entries.get(path)

    def add_lines(self, path: TrackedPath, lines: Iterable[int], *, now: float) -> PendingChange:
        """Union ``lines`` into the entry for ``path``."""
        entry = self._entries.setdefault(path, PendingChange())
        entry.lines.update(lines)
        entry.last_touched = now
        return entry

    def mark_whole_file(self, path: TrackedPath, *, now: float) -> PendingChange:
        """Record that ``path`` changed with no trustworthy before-state."""
        entry = self._entries.setdefault(path, PendingChange())
        entry.pending = True
        entry.last_touched = now
        return entry

    def capture_baseline(
        self, path: TrackedPath, lines: Sequence[str], *, now: float
    ) -> bool:
        """Keep ``lines`` as the session baseline unless one already exists.

        Returns True if this call captured the baseline (first touch).
        """
        entry = self._entries.setdefault(path, PendingChange())
        entry.last_touched = now
        if entry.baseline is not None:
            return False
        entry.baseline = tuple(lines)
        return True

    def take(self, path: TrackedPath) -> PendingChange | None:
        """Remove and return the entry for ``path``."""
        return self._entries.pop(path, None)

    def take_baselines(self) -> dict[TrackedPath, PendingChange]:
        """Remove and return every entry holding a session baseline."""
        taken = {p: e for p, e in self._entries.items() if e.baseline is not None}
        for path in taken:
            del self._entries[path]
        return taken

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TrackedPath]:
        return iter(list(self._entries))
