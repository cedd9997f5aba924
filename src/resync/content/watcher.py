"""File watcher — raw filesystem changes for tracked files.

Monitors three kinds of files for changes:

- Tracked document files -> hunk-less ChangeEvent, reconciled by the engine
- The marker file -> read, truncate, one ChangeEvent per listed path
- The VCS index -> commit detection, clears highlights

The watcher observes the *parent directories* of the files it cares
about, because agents commonly replace files via rename, which a
per-file watch would lose. Changes to anything else in those
directories are discarded by ``categorize_change``.
"""

from __future__ import annotations

import asyncio
import os
import sys
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, TypeAlias

from watchfiles import Change

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable

    from resync._types import TrackedPath
    from resync.config import ResyncConfig


ChangeCategory: TypeAlias = Literal["document", "marker", "vcs_index"]


@dataclass(frozen=True, slots=True)
class FsChange:
    """A raw file change detected by the watcher.

    Attributes:
        path: Absolute path to the changed file.
        kind: Type of filesystem change.
        category: What kind of file changed (determines engine handling).

    """

    path: TrackedPath
    kind: Literal["created", "modified", "deleted"]
    category: ChangeCategory


# Mapping from watchfiles Change enum to our kind literals.
_CHANGE_KIND_MAP: dict[Change, Literal["created", "modified", "deleted"]] = {
    Change.added: "created",
    Change.modified: "modified",
    Change.deleted: "deleted",
}


def categorize_change(
    path: TrackedPath,
    tracked: frozenset[TrackedPath],
    *,
    marker_path: TrackedPath,
    vcs_index_path: TrackedPath,
) -> ChangeCategory | None:
    """Determine the category of a changed file.

    Returns None if the file is neither tracked nor one of the engine's
    control files.

    """
    path = os.path.abspath(path)
    if path == marker_path:
        return "marker"
    if path == vcs_index_path:
        return "vcs_index"
    if path in tracked:
        return "document"
    return None


class FileWatcher:
    """Watches tracked files and control files for changes.

    Uses watchfiles for efficient filesystem monitoring. Categorizes
    changes (document, marker, vcs_index) so the engine can route them.

    The watcher runs watchfiles in a background thread and bridges events
    onto the event loop with ``call_soon_threadsafe``; the thread itself
    never touches engine state.

    Args:
        config: Engine configuration (control file paths, watch timings).

    """

    def __init__(self, config: ResyncConfig) -> None:
        self._config = config
        self._marker_path = str(config.marker_path)
        self._vcs_index_path = str(config.vcs_index_path)
        self._queue: asyncio.Queue[FsChange] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        # True between start() and stop(); a dead thread is restarted meanwhile.
        self._wanted = False
        # Replaced wholesale (never mutated) so the watch thread can read
        # it without a lock.
        self._tracked: frozenset[TrackedPath] = frozenset()
        self._watched_dirs: frozenset[str] = frozenset()

    @property
    def is_running(self) -> bool:
        """Whether the watcher background thread is active."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def tracked(self) -> frozenset[TrackedPath]:
        """Document paths currently under watch."""
        return self._tracked

    def track(self, path: TrackedPath) -> None:
        """Add a document path to the watch set."""
        if path in self._tracked:
            return
        self._tracked = self._tracked | {path}
        self._refresh_dirs()

    def untrack(self, path: TrackedPath) -> None:
        """Remove a document path from the watch set."""
        if path not in self._tracked:
            return
        self._tracked = self._tracked - {path}
        self._refresh_dirs()

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Start watching for file changes in a background thread.

        Must be called on the event loop thread (or be given the loop).

        """
        self._wanted = True
        if self.is_running:
            return

        self._loop = loop if loop is not None else asyncio.get_running_loop()
        self._watched_dirs = self._directories()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._watch_loop,
            args=(self._watched_dirs,),
            name="resync-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the watcher to stop and wait for the thread to finish."""
        self._wanted = False
        self._halt()

    async def changes(self) -> AsyncIterator[FsChange]:
        """Async iterator that yields FsChange objects as they occur.

        Blocks until a change is available or the watcher is stopped.

        """
        while self._wanted or not self._queue.empty():
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=0.5)
                yield event
            except TimeoutError:
                if not self._wanted:
                    break
                if not self.is_running and self._directories():
                    self._restart()

    def _directories(self) -> frozenset[str]:
        """Existing parent directories of everything worth watching."""
        paths: Iterable[str] = (*self._tracked, self._marker_path, self._vcs_index_path)
        return frozenset(
            d for d in {os.path.dirname(p) for p in paths} if os.path.isdir(d)
        )

    def _refresh_dirs(self) -> None:
        """Restart the watch thread when the directory set changed or it died.

        watchfiles cannot add paths to a running watch.
        """
        if not self._wanted:
            return
        if self.is_running and self._directories() == self._watched_dirs:
            return
        self._restart()

    def _restart(self) -> None:
        self._halt()
        self.start(self._loop)

    def _halt(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

    def _watch_loop(self, dirs: frozenset[str]) -> None:
        """Background thread: run watchfiles and push events to the loop."""
        from watchfiles import watch

        if not dirs:
            return

        try:
            for raw_changes in watch(
                *sorted(dirs),
                watch_filter=None,
                stop_event=self._stop_event,
                debounce=self._config.watch_debounce_ms,
                step=self._config.watch_step_ms,
                recursive=False,
                ignore_permission_denied=True,
            ):
                for change_type, path_str in raw_changes:
                    self._emit(change_type, path_str)
        except (OSError, RuntimeError) as exc:
            print(f"  Watcher stopped: {exc}", file=sys.stderr)

    def _emit(self, change_type: Change, path_str: str) -> None:
        category = categorize_change(
            path_str,
            self._tracked,
            marker_path=self._marker_path,
            vcs_index_path=self._vcs_index_path,
        )
        if category is None or self._loop is None:
            return

        kind = _CHANGE_KIND_MAP.get(change_type, "modified")
        event = FsChange(path=os.path.abspath(path_str), kind=kind, category=category)
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)
        except RuntimeError:
            pass  # Loop already closed during shutdown
