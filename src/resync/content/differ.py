"""Line differ — which lines of the new content changed.

Compares two line sequences and produces ordered, non-overlapping change
hunks measured against the *new* sequence. Only lines that exist in the
new content can be highlighted, so pure deletions produce no hunk.

The primary differ uses ``difflib.SequenceMatcher`` (longest matching
blocks, junk heuristic disabled). A positional fallback compares lines
index by index in O(n); it is cheaper but reports a shifted tail as
modified after an insertion.
"""

from __future__ import annotations

from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


@dataclass(frozen=True, slots=True)
class ChangeHunk:
    """A contiguous range of changed lines in the new content.

    Attributes:
        start_line: First changed line (1-based).
        end_line: Last changed line (1-based, inclusive).
        kind: ``added`` for lines with no counterpart in the old content,
            ``modified`` for lines that replaced old lines.

    """

    start_line: int
    end_line: int
    kind: Literal["added", "modified"]

    def __post_init__(self) -> None:
        if self.start_line < 1 or self.end_line < self.start_line:
            msg = f"invalid hunk range {self.start_line}..{self.end_line}"
            raise ValueError(msg)

    @property
    def lines(self) -> range:
        """Line numbers covered by this hunk."""
        return range(self.start_line, self.end_line + 1)


def diff_lines(old: Sequence[str], new: Sequence[str]) -> tuple[ChangeHunk, ...]:
    """Diff two line sequences into hunks against ``new``.

    Algorithm:
        1. Find matching blocks with ``SequenceMatcher`` (autojunk off so
           frequent lines such as blank lines are still matched).
        2. For each non-equal opcode with a non-empty new range, emit one
           hunk spanning that range.
        3. ``insert`` opcodes are ``added``; ``replace`` opcodes are
           ``modified``; ``delete`` opcodes have nothing to mark.

    Identical inputs yield an empty tuple.

    """
    if old == new:
        return ()
    matcher = SequenceMatcher(None, old, new, autojunk=False)
    hunks: list[ChangeHunk] = []
    for tag, _i1, _i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal" or j2 <= j1:
            continue
        kind: Literal["added", "modified"] = "added" if tag == "insert" else "modified"
        hunks.append(ChangeHunk(start_line=j1 + 1, end_line=j2, kind=kind))
    return tuple(hunks)


def diff_positional(old: Sequence[str], new: Sequence[str]) -> tuple[ChangeHunk, ...]:
    """Positional line-by-line diff in O(n).

    Line ``i`` (1-based) is ``added`` if ``i > len(old)``, else ``modified``
    when ``old[i] != new[i]``. Consecutive lines of the same kind are
    coalesced into one hunk.

    """
    hunks: list[ChangeHunk] = []
    start = 0
    run_kind: Literal["added", "modified"] | None = None
    kind: Literal["added", "modified"] | None

    for i, line in enumerate(new, start=1):
        if i > len(old):
            kind = "added"
        elif old[i - 1] != line:
            kind = "modified"
        else:
            kind = None

        if kind != run_kind:
            if run_kind is not None:
                hunks.append(ChangeHunk(start_line=start, end_line=i - 1, kind=run_kind))
            start = i
            run_kind = kind

    if run_kind is not None:
        hunks.append(ChangeHunk(start_line=start, end_line=len(new), kind=run_kind))
    return tuple(hunks)


def changed_lines(hunks: Iterable[ChangeHunk]) -> frozenset[int]:
    """Union of the line numbers covered by ``hunks``."""
    lines: set[int] = set()
    for hunk in hunks:
        lines.update(hunk.lines)
    return frozenset(lines)


def hunks_from_lines(lines: Iterable[int]) -> tuple[ChangeHunk, ...]:
    """Rebuild ``modified`` hunks from a set of line numbers.

    Used when accumulated line numbers (whose original kinds were merged
    away) need to be highlighted.
    """
    hunks: list[ChangeHunk] = []
    for line in sorted(n for n in set(lines) if n >= 1):
        if hunks and hunks[-1].end_line == line - 1:
            hunks[-1] = ChangeHunk(start_line=hunks[-1].start_line, end_line=line, kind="modified")
        else:
            hunks.append(ChangeHunk(start_line=line, end_line=line, kind="modified"))
    return tuple(hunks)


def normalize_hunks(hunks: Iterable[ChangeHunk]) -> tuple[ChangeHunk, ...]:
    """Sort hunks and merge overlapping or adjacent ranges of the same kind.

    Announced hunks come from an external caller and may overlap; overlap
    between different kinds resolves to ``modified``.
    """
    ordered = sorted(hunks, key=lambda h: (h.start_line, h.end_line))
    merged: list[ChangeHunk] = []
    for hunk in ordered:
        if merged:
            last = merged[-1]
            overlaps = hunk.start_line <= last.end_line
            adjacent = hunk.start_line == last.end_line + 1 and hunk.kind == last.kind
            if overlaps or adjacent:
                kind = last.kind if last.kind == hunk.kind else "modified"
                merged[-1] = ChangeHunk(
                    start_line=last.start_line,
                    end_line=max(last.end_line, hunk.end_line),
                    kind=kind,
                )
                continue
        merged.append(hunk)
    return tuple(merged)
