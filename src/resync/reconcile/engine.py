"""Reconciliation engine — wires sources, queue, timers and controller.

One ``ReconciliationEngine`` is constructed per editor session. It owns
every mutable table (snapshots, pending changes, session state, timers)
and routes each ``EngineEvent`` to the component that handles it.

Threading model:
    Everything runs on the control thread (the asyncio loop by default).
    The watchfiles thread and any other foreign thread use ``submit``,
    which hops onto the loop with ``call_soon_threadsafe``.

Typical use::

    engine = ReconciliationEngine(editor, load_config("."))
    engine.start()          # on the loop thread
    await engine.run()      # consume watcher changes until close()
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from resync._errors import SnapshotError
from resync.config import ResyncConfig
from resync.content.marker import MarkerFile, canonical_path
from resync.content.sources import from_fs_change, from_marker, from_recheck
from resync.content.store import ContentStore, read_snapshot
from resync.content.watcher import FileWatcher
from resync.observability.profiler import ReconcileProfiler
from resync.reconcile.controller import PathState, ReconciliationController
from resync.reconcile.debounce import Cooldown, Debouncer
from resync.reconcile.highlight import HighlightLifecycle
from resync.reconcile.pending import PendingChanges
from resync.reconcile.queue import (
    DebouncedEvent,
    DocumentClosed,
    DocumentEdited,
    DocumentOpened,
    DocumentSaved,
    EventQueue,
    FocusGained,
    MarkerTouched,
    RawFsEvent,
    ReloadRequest,
    SessionEnd,
    SessionFlush,
    SessionStart,
    VcsIndexTouched,
)
from resync.reconcile.session import Session
from resync.reconcile.vcs import CommitDetector

if TYPE_CHECKING:
    from collections.abc import Iterable

    from resync._types import TrackedPath
    from resync.content.watcher import FsChange
    from resync.editor import Editor
    from resync.observability.collector import ReconcileCollector
    from resync.reconcile.queue import EngineEvent, Scheduler, TimerHandle


class ReconciliationEngine:
    """Keeps open documents in sync with files changed behind the editor.

    Args:
        editor: Host editor.
        config: Engine configuration. Defaults to ``ResyncConfig()``.
        scheduler: Control loop clock and timers. Defaults to the running
            asyncio loop.
        collector: Optional observability sink.
        watcher: File watcher. Defaults to a ``FileWatcher`` for ``config``.

    """

    def __init__(
        self,
        editor: Editor,
        config: ResyncConfig | None = None,
        *,
        scheduler: Scheduler | None = None,
        collector: ReconcileCollector | None = None,
        watcher: FileWatcher | None = None,
    ) -> None:
        self._editor = editor
        self._config = config if config is not None else ResyncConfig()
        self._scheduler: Scheduler = (
            scheduler if scheduler is not None else asyncio.get_running_loop()
        )
        self._collector = collector
        self._watcher = watcher if watcher is not None else FileWatcher(self._config)

        cfg = self._config
        self._store = ContentStore()
        self._pending = PendingChanges()
        self._session = Session()
        self._cooldown = Cooldown(self._scheduler, cfg.cooldown_s)
        self._debouncer = Debouncer(
            self._scheduler,
            cfg.debounce_s,
            self._cooldown,
            lambda change: self.post(DebouncedEvent(change)),
        )
        self._highlights = (
            HighlightLifecycle(
                editor,
                self._scheduler,
                tag=cfg.highlight_tag,
                expiry_delay=cfg.expiry_delay_s,
                reload_guard=cfg.reload_guard_s,
                collector=collector,
            )
            if cfg.highlight_changes
            else None
        )
        profiler = (
            ReconcileProfiler(collector.log, verbose=cfg.verbose)
            if collector is not None
            else None
        )
        self._controller = ReconciliationController(
            editor,
            self._scheduler,
            store=self._store,
            pending=self._pending,
            session=self._session,
            cooldown=self._cooldown,
            highlights=self._highlights,
            collector=collector,
            profiler=profiler,
        )
        self._marker = MarkerFile(cfg.marker_path)
        self._commits = CommitDetector(cfg.vcs_index_path)
        self._queue = EventQueue(self._dispatch)
        self._settle_timer: TimerHandle | None = None
        self._closed = False

    # ----- Accessors -----

    @property
    def config(self) -> ResyncConfig:
        return self._config

    @property
    def editor(self) -> Editor:
        return self._editor

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

    @property
    def watcher(self) -> FileWatcher:
        return self._watcher

    @property
    def marker(self) -> MarkerFile:
        return self._marker

    def now(self) -> float:
        """Current control-loop time in seconds."""
        return self._scheduler.time()

    def state(self, path: TrackedPath) -> PathState:
        """Where ``path`` currently is in its reconciliation lifecycle."""
        path = canonical_path(path)
        if self._controller.is_reconciling(path):
            return PathState.RECONCILING
        if self._debouncer.is_pending(path):
            return PathState.EVENT_PENDING
        if self._controller.is_deferred(path):
            return PathState.DEFERRED
        return PathState.IDLE

    # ----- Lifecycle -----

    def start(self) -> None:
        """Create the marker file and start watching.

        Must be called on the loop thread when the default watcher is used.
        """
        self._closed = False
        self._marker.ensure_exists()
        for handle in self._editor.list_documents():
            self._watcher.track(handle.path)
        loop = self._scheduler if isinstance(self._scheduler, asyncio.AbstractEventLoop) else None
        self._watcher.start(loop)

    async def run(self) -> None:
        """Feed watcher changes into the engine until the watcher stops."""
        async for change in self._watcher.changes():
            self.handle_fs_change(change)

    def close(self) -> None:
        """Stop watching and cancel every timer."""
        self._closed = True
        self._watcher.stop()
        self._debouncer.cancel_all()
        if self._settle_timer is not None:
            self._settle_timer.cancel()
            self._settle_timer = None
        if self._highlights is not None:
            self._highlights.close()

    # ----- Event intake -----

    def post(self, event: EngineEvent) -> None:
        """Handle ``event`` on the control thread, after any in-flight event."""
        self._queue.post(event)

    def submit(self, event: EngineEvent) -> None:
        """Thread-safe ``post``."""
        self._scheduler.call_soon_threadsafe(self.post, event)

    def handle_fs_change(self, change: FsChange) -> None:
        """Route a watcher change by category."""
        if change.category == "marker":
            self.post(MarkerTouched())
        elif change.category == "vcs_index":
            self.post(VcsIndexTouched())
        else:
            event = from_fs_change(change, now=self._scheduler.time())
            if event is not None:
                self.post(RawFsEvent(event))

    def process_now(self) -> int:
        """Consume the marker file on demand. Returns the number of paths read."""
        events = from_marker(self._marker.consume(), now=self._scheduler.time())
        for event in events:
            self.post(RawFsEvent(event))
        return len(events)

    def check_all(self) -> int:
        """Recheck every open document against the disk.

        Clean documents whose file differs from their content are queued
        as changes, which retries anything skipped while a document was
        dirty and has since become clean without being saved. Dirty,
        closed and unreadable documents are left alone.

        Returns the number of documents queued.
        """
        now = self._scheduler.time()
        queued = 0
        for handle in self._editor.list_documents():
            if not self._editor.is_valid(handle) or self._editor.is_dirty(handle):
                continue
            try:
                disk = read_snapshot(handle.path)
            except SnapshotError:
                continue
            if disk.lines == tuple(self._editor.get_lines(handle)):
                continue
            self.post(RawFsEvent(from_recheck(handle.path, now=now)))
            queued += 1
        return queued

    def seed(self, paths: Iterable[str]) -> int:
        """Store disk snapshots for ``paths`` that have none yet.

        A file that changes while closed can then be diffed line by line
        instead of being reported as modified with no detail.
        """
        seeded = 0
        for raw in paths:
            path = canonical_path(raw)
            if path in self._store:
                continue
            try:
                self._store.put(path, read_snapshot(path))
            except SnapshotError:
                continue
            seeded += 1
        return seeded

    # ----- Highlight commands -----

    def clear_highlights(self, path: str | None = None) -> int:
        """Clear highlights for one path, or for every document.

        Returns the number of documents cleared.
        """
        if self._highlights is None:
            return 0
        if path is None:
            return self._highlights.clear_all(reason="manual")
        handle = self._editor.find_document(canonical_path(path))
        if handle is None:
            return 0
        return int(self._highlights.clear(handle, reason="manual"))

    def save_baseline(self, path: str) -> bool:
        return self._controller.save_baseline(canonical_path(path))

    # ----- Dispatch -----

    def _dispatch(self, event: EngineEvent) -> None:
        match event:
            case RawFsEvent(change=change):
                self._debouncer.push(change)
            case DebouncedEvent(change=change):
                self._controller.handle_change(change)
            case ReloadRequest(path=path):
                path = canonical_path(path)
                self._debouncer.cancel(path)
                self._controller.reconcile_now(path)
            case MarkerTouched():
                self._on_marker()
            case VcsIndexTouched() | FocusGained():
                self._check_commit()
            case SessionStart():
                self._on_session_start()
            case SessionEnd():
                self._on_session_end()
            case SessionFlush():
                self._settle_timer = None
                self._controller.flush_session()
            case DocumentOpened(path=path):
                self._on_document_opened(canonical_path(path))
            case DocumentSaved(path=path):
                handle = self._editor.find_document(canonical_path(path))
                if handle is not None:
                    self._controller.capture_document(handle)
            case DocumentClosed(path=path):
                path = canonical_path(path)
                self._watcher.untrack(path)
                self._controller.document_closed(path)
            case DocumentEdited(path=path):
                handle = self._editor.find_document(canonical_path(path))
                if handle is not None:
                    self._controller.document_edited(handle)

    def _on_marker(self) -> None:
        now = self._scheduler.time()
        for change in from_marker(self._marker.poll(), now=now):
            self.post(RawFsEvent(change))

    def _check_commit(self) -> None:
        if not self._commits.check():
            return
        if self._highlights is not None and self._highlights.clear_all(reason="commit"):
            self._editor.notify("Highlights cleared (commit detected)", "info")

    def _on_session_start(self) -> None:
        if self._settle_timer is not None:
            # A new session began during the settle delay; flush the old one first.
            self._settle_timer.cancel()
            self._settle_timer = None
            self._controller.flush_session()
        self._controller.start_session()

    def _on_session_end(self) -> None:
        if not self._session.end():
            return
        self._settle_timer = self._scheduler.call_later(
            self._config.settle_s, self.post, SessionFlush()
        )

    def _on_document_opened(self, path: TrackedPath) -> None:
        handle = self._editor.find_document(path)
        if handle is None:
            return
        if not self._closed:
            self._watcher.track(handle.path)
        self._controller.document_opened(handle)
