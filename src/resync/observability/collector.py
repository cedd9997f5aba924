"""Reconcile collector — one place the engine reports its decisions.

Wraps an ``EventLog`` with typed ``record_*`` methods so engine code
never builds event objects or reads clocks itself.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.

"""

from __future__ import annotations

from typing import TYPE_CHECKING

from resync.observability.events import (
    ChangeDeferred,
    ContentDiffed,
    DocumentReloaded,
    HighlightsCleared,
    ReconcileSkipped,
    SnapshotStored,
    now_ns,
)
from resync.observability.log import EventLog

if TYPE_CHECKING:
    from collections.abc import Iterable

    from resync.content.differ import ChangeHunk


class ReconcileCollector:
    """Event collector for the reconciliation engine.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Content events -----

    def record_snapshot(self, path: str, *, line_count: int, source: str) -> None:
        """Record that a snapshot was stored."""
        self._log.append(
            SnapshotStored(
                path=path,
                line_count=line_count,
                source=source,  # type: ignore[arg-type]
                timestamp_ns=now_ns(),
            )
        )

    def record_diff(self, path: str, hunks: Iterable[ChangeHunk]) -> None:
        """Record a diff, counting lines per hunk kind."""
        hunks = tuple(hunks)
        added = sum(len(h.lines) for h in hunks if h.kind == "added")
        modified = sum(len(h.lines) for h in hunks if h.kind == "modified")
        self._log.append(
            ContentDiffed(
                path=path,
                hunks=len(hunks),
                added=added,
                modified=modified,
                timestamp_ns=now_ns(),
            )
        )

    # ----- Reconciliation events -----

    def record_deferred(self, path: str, *, reason: str, whole_file: bool = False) -> None:
        """Record a change queued for later."""
        self._log.append(
            ChangeDeferred(
                path=path,
                reason=reason,  # type: ignore[arg-type]
                whole_file=whole_file,
                timestamp_ns=now_ns(),
            )
        )

    def record_skip(self, path: str, *, reason: str) -> None:
        """Record a change the engine declined to reconcile."""
        self._log.append(
            ReconcileSkipped(
                path=path,
                reason=reason,  # type: ignore[arg-type]
                timestamp_ns=now_ns(),
            )
        )

    def record_reload(
        self,
        path: str,
        *,
        success: bool,
        lines_highlighted: int = 0,
        duration_ms: float = 0.0,
    ) -> None:
        """Record a document reload attempt."""
        self._log.append(
            DocumentReloaded(
                path=path,
                success=success,
                lines_highlighted=lines_highlighted,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_highlights_cleared(self, path: str, *, reason: str, documents: int) -> None:
        """Record a highlight expiry."""
        self._log.append(
            HighlightsCleared(
                path=path,
                reason=reason,  # type: ignore[arg-type]
                documents=documents,
                timestamp_ns=now_ns(),
            )
        )
