"""Reconciliation controller — decides what to do with each settled change.

For each debounced ``ChangeEvent``:

    1. File not open -> diff disk against the snapshot and accumulate the
       changed lines as pending (or mark the whole file changed when there
       is no snapshot to diff against).
    2. Open with unsaved edits -> never reload; warn the user.
       Open and already identical to the disk (the user's own save, a
       metadata-only touch) -> nothing to do.
    3. Open, clean, agent session active -> keep the pre-session content
       as a baseline and defer until the session ends.
    4. Otherwise -> reload from disk, diff, highlight, refresh the snapshot,
       start the cooldown.

Every reload preserves cursor positions and releases its guards even if
the editor raises.
"""

from __future__ import annotations

import enum
import os
import sys
import time
from typing import TYPE_CHECKING

from resync._errors import ReloadError, SnapshotError
from resync.content.differ import changed_lines, diff_lines, hunks_from_lines
from resync.content.store import Snapshot, read_snapshot, snapshot_of
from resync.editor import restore_viewports

if TYPE_CHECKING:
    from collections.abc import Sequence

    from resync._types import TrackedPath
    from resync.content.differ import ChangeHunk
    from resync.content.sources import ChangeEvent
    from resync.content.store import ContentStore
    from resync.editor import DocumentHandle, Editor
    from resync.observability.collector import ReconcileCollector
    from resync.observability.profiler import ReconcileProfiler
    from resync.reconcile.debounce import Cooldown
    from resync.reconcile.highlight import HighlightLifecycle
    from resync.reconcile.pending import PendingChanges
    from resync.reconcile.queue import Scheduler
    from resync.reconcile.session import Session


class PathState(enum.Enum):
    """Where a path is in its reconciliation lifecycle."""

    IDLE = "idle"
    EVENT_PENDING = "event_pending"
    RECONCILING = "reconciling"
    DEFERRED = "deferred"


def _name(path: TrackedPath) -> str:
    return os.path.basename(path) or path


class ReconciliationController:
    """The per-path reconciliation state machine.

    Args:
        editor: Host editor.
        scheduler: Control loop clock.
        store: Snapshot store.
        pending: Pending change table.
        session: Agent session gate.
        cooldown: Post-reload suppression, started after every reload.
        highlights: Highlight lifecycle, or None to reconcile without marks.
        collector: Optional observability sink.
        profiler: Optional per-stage timing.

    """

    def __init__(
        self,
        editor: Editor,
        scheduler: Scheduler,
        *,
        store: ContentStore,
        pending: PendingChanges,
        session: Session,
        cooldown: Cooldown,
        highlights: HighlightLifecycle | None = None,
        collector: ReconcileCollector | None = None,
        profiler: ReconcileProfiler | None = None,
    ) -> None:
        self._editor = editor
        self._scheduler = scheduler
        self._store = store
        self._pending = pending
        self._session = session
        self._cooldown = cooldown
        self._highlights = highlights
        self._collector = collector
        self._profiler = profiler
        # Paths with a reload in flight; guards against re-entrancy.
        self._reconciling: set[TrackedPath] = set()

    @property
    def store(self) -> ContentStore:
        return self._store

    @property
    def pending(self) -> PendingChanges:
        return self._pending

    @property
    def session(self) -> Session:
        return self._session

    @property
    def highlights(self) -> HighlightLifecycle | None:
        return self._highlights

    def is_reconciling(self, path: TrackedPath) -> bool:
        return path in self._reconciling

    def is_deferred(self, path: TrackedPath) -> bool:
        entry = self._pending.get(path)
        return self._session.active and entry is not None and entry.baseline is not None

    def in_sync(self, handle: DocumentHandle) -> bool:
        """Whether the file on disk holds exactly the document's content.

        An unreadable file is never in sync.
        """
        try:
            disk = read_snapshot(handle.path)
        except SnapshotError:
            return False
        return disk.lines == tuple(self._editor.get_lines(handle))

    # ----- Change handling -----

    def handle_change(self, event: ChangeEvent) -> None:
        """Reconcile one debounced change."""
        path = event.path
        handle = self._editor.find_document(path)

        if handle is None or not self._editor.is_valid(handle):
            self._reconcile_closed(path, event.hunks)
            return

        if self._editor.is_dirty(handle):
            self._skip_dirty(path)
            return

        if self.in_sync(handle):
            if self._collector is not None:
                self._collector.record_skip(path, reason="unchanged")
            return

        if self._session.active:
            self._defer(handle)
            return

        self.reload(handle, hunks=event.hunks)

    def reconcile_now(self, path: TrackedPath) -> None:
        """Explicit reload request: reconcile ``path`` without waiting.

        Unsaved edits are still never overwritten.
        """
        handle = self._editor.find_document(path)
        if handle is None or not self._editor.is_valid(handle):
            self._reconcile_closed(path, None)
            return
        if self._editor.is_dirty(handle):
            self._skip_dirty(path)
            return
        self.reload(handle)

    def reload(
        self,
        handle: DocumentHandle,
        *,
        baseline: Sequence[str] | None = None,
        hunks: tuple[ChangeHunk, ...] | None = None,
        highlight: bool = True,
    ) -> bool:
        """Reload ``handle`` from disk and highlight what changed.

        Args:
            handle: Open, clean document.
            baseline: Content to diff against; defaults to the document's
                content just before the reload.
            hunks: Announced hunks; skips diffing when given.
            highlight: Mark changed lines.

        Returns:
            True if the editor reloaded the document.

        """
        path = handle.path
        if path in self._reconciling:
            if self._collector is not None:
                self._collector.record_skip(path, reason="reentrant")
            return False

        self._reconciling.add(path)
        profiler = self._profiler
        if profiler is not None:
            profiler.begin(path)
        t0 = time.perf_counter()
        try:
            if profiler is not None:
                profiler.start("read")
            before = tuple(baseline) if baseline is not None else tuple(self._editor.get_lines(handle))
            viewports = tuple(self._editor.get_viewports_showing(handle))
            if profiler is not None:
                profiler.stop("read")

            if self._highlights is not None:
                self._highlights.begin_reload(handle)
            try:
                if profiler is not None:
                    profiler.start("reload")
                self._reload_document(handle)
            except ReloadError as exc:
                print(f"  {exc}", file=sys.stderr)
                self._editor.notify(f"Reload failed: {_name(path)}", "error")
                if self._collector is not None:
                    self._collector.record_reload(path, success=False)
                return False
            finally:
                if profiler is not None:
                    profiler.stop("reload")
                self._cooldown.start(path)
                if self._highlights is not None:
                    self._highlights.end_reload(handle)

            restore_viewports(self._editor, handle, viewports)
            after = tuple(self._editor.get_lines(handle))

            if hunks is None:
                if profiler is not None:
                    profiler.start("diff")
                hunks = diff_lines(before, after)
                if profiler is not None:
                    profiler.stop("diff")
                if self._collector is not None:
                    self._collector.record_diff(path, hunks)

            count = 0
            if highlight and self._highlights is not None:
                if profiler is not None:
                    profiler.start("highlight")
                count = self._highlights.apply(handle, hunks)
                if profiler is not None:
                    profiler.stop("highlight")

            self._put_snapshot(path, snapshot_of(after, path), source="reload")

            if count:
                self._editor.notify(f"Reloaded: {_name(path)} ({count} line(s) changed)", "info")
            else:
                self._editor.notify(f"Reloaded: {_name(path)}", "info")
            if self._collector is not None:
                self._collector.record_reload(
                    path,
                    success=True,
                    lines_highlighted=count,
                    duration_ms=(time.perf_counter() - t0) * 1000,
                )
            if profiler is not None:
                profiler.finish(lines_highlighted=count)
            return True
        finally:
            self._reconciling.discard(path)

    def _reload_document(self, handle: DocumentHandle) -> None:
        """Ask the editor to reload, turning any failure into ReloadError."""
        try:
            reloaded = self._editor.reload_from_disk(handle)
        except Exception as exc:
            msg = f"Reload error: {_name(handle.path)}: {exc}"
            raise ReloadError(msg) from exc
        if not reloaded:
            msg = f"Reload refused: {_name(handle.path)}"
            raise ReloadError(msg)

    def _reconcile_closed(
        self, path: TrackedPath, hunks: tuple[ChangeHunk, ...] | None
    ) -> None:
        """A change to a file with no open document.

        With a snapshot (or announced hunks) the changed lines are
        accumulated for when the file is opened. With neither, the file is
        marked as changed with no line detail.
        """
        now = self._scheduler.time()
        snapshot = self._store.get(path)

        if snapshot is None and hunks is None:
            self._pending.mark_whole_file(path, now=now)
            if self._collector is not None:
                self._collector.record_deferred(path, reason="closed", whole_file=True)
            return

        try:
            current = read_snapshot(path)
        except SnapshotError as exc:
            print(f"  Read error: {exc}", file=sys.stderr)
            if self._collector is not None:
                self._collector.record_skip(path, reason="unreadable")
            if hunks is None:
                return
            current = None

        if hunks is None and current is not None and snapshot is not None:
            hunks = diff_lines(snapshot.lines, current.lines)
            if self._collector is not None:
                self._collector.record_diff(path, hunks)

        lines = changed_lines(hunks or ())
        if lines:
            entry = self._pending.add_lines(path, lines, now=now)
            if self._collector is not None:
                self._collector.record_deferred(path, reason="closed")
            self._editor.notify(
                f"Stored {len(entry.lines)} pending highlight(s) for {_name(path)}", "info"
            )
        if current is not None:
            self._put_snapshot(path, current, source="disk")

    def _skip_dirty(self, path: TrackedPath) -> None:
        self._editor.notify(f"Skipping reload: {_name(path)} (unsaved changes)", "warn")
        if self._collector is not None:
            self._collector.record_skip(path, reason="dirty")

    def _defer(self, handle: DocumentHandle) -> None:
        """Session active: remember the pre-session content on first touch."""
        path = handle.path
        self._session.touch(path)
        first = self._pending.capture_baseline(
            path, self._editor.get_lines(handle), now=self._scheduler.time()
        )
        if first and self._collector is not None:
            self._collector.record_deferred(path, reason="session")

    # ----- Session -----

    def start_session(self) -> None:
        """A new agent session clears highlights and starts deferring."""
        if self._highlights is not None:
            self._highlights.clear_all(reason="session")
        self._pending.take_baselines()
        self._session.start()

    def flush_session(self) -> int:
        """Reconcile every path deferred during the session, exactly once.

        Returns the number of documents reloaded.
        """
        touched = self._session.finish()
        baselines = self._pending.take_baselines()
        reloaded = 0

        for path in touched:
            entry = baselines.pop(path, None)
            baseline = entry.baseline if entry is not None else None
            handle = self._editor.find_document(path)

            if handle is None or not self._editor.is_valid(handle):
                # Closed during the session: diff the disk against the baseline.
                if baseline is not None:
                    self._store.put(path, snapshot_of(baseline, path))
                self._reconcile_closed(path, None)
                continue

            if self._editor.is_dirty(handle):
                self._skip_dirty(path)
                continue

            if baseline is not None:
                reloaded += self.reload(handle, baseline=baseline)
            else:
                reloaded += self.reload(handle, highlight=False)
                self._editor.notify(f"File was modified: {_name(path)}", "info")

        return reloaded

    # ----- Document lifecycle -----

    def document_opened(self, handle: DocumentHandle) -> None:
        """Replay pending changes for a newly opened document, then snapshot it."""
        path = handle.path
        entry = self._pending.get(path)
        if entry is not None and entry.baseline is None:
            self._pending.take(path)
            if entry.pending:
                # No trustworthy before-state: notify, but mark nothing.
                self._editor.notify(f"File was modified: {_name(path)}", "info")
            elif entry.lines and self._highlights is not None:
                count = self._highlights.apply(handle, hunks_from_lines(entry.lines))
                if count:
                    self._editor.notify(f"Applied {count} pending highlight(s)", "info")
        self.capture_document(handle)

    def document_closed(self, path: TrackedPath) -> None:
        """Drop highlight bookkeeping; the snapshot is kept for the next diff."""
        if self._highlights is not None:
            self._highlights.forget_path(path)

    def document_edited(self, handle: DocumentHandle) -> None:
        if self._highlights is not None:
            self._highlights.on_text_changed(handle)

    def capture_document(self, handle: DocumentHandle) -> None:
        """Store the document's current content as the snapshot."""
        if not self._editor.is_valid(handle):
            return
        lines = self._editor.get_lines(handle)
        self._put_snapshot(handle.path, snapshot_of(lines, handle.path), source="document")

    def save_baseline(self, path: TrackedPath) -> bool:
        """Seed the snapshot before an external mutation begins.

        Uses the open document's content if there is one, else the disk.
        Returns False if neither could be read.
        """
        handle = self._editor.find_document(path)
        if handle is not None and self._editor.is_valid(handle):
            lines = self._editor.get_lines(handle)
            self._put_snapshot(path, snapshot_of(lines, path), source="baseline")
            return True
        try:
            snapshot = read_snapshot(path)
        except SnapshotError as exc:
            print(f"  Read error: {exc}", file=sys.stderr)
            return False
        self._put_snapshot(path, snapshot, source="baseline")
        return True

    def _put_snapshot(self, path: TrackedPath, snapshot: Snapshot, *, source: str) -> None:
        self._store.put(path, snapshot)
        if self._collector is not None:
            self._collector.record_snapshot(path, line_count=len(snapshot.lines), source=source)
