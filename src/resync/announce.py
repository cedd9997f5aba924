"""Announcement API — explicit change notifications from an external caller.

An agent tool that knows exactly which lines it rewrote can say so
instead of waiting for the watcher. Announced hunks go through the same
debounce, cooldown, dirty and session handling as every other change;
only the diff is skipped.

Typical call sequence from an agent tool::

    api.save_baseline("/src/app.py")     # before writing
    ...write the file...
    api.notify_change("/src/app.py", [{"start_line": 3, "end_line": 5, "kind": "modify"}])
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from resync.content.sources import from_announcement
from resync.reconcile.queue import RawFsEvent, ReloadRequest

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from resync.reconcile.engine import ReconciliationEngine


class AnnouncementAPI:
    """Entry points for callers that announce their own changes.

    Methods must be called on the engine's control thread.

    Args:
        engine: The engine the announcements feed.

    """

    __slots__ = ("_engine",)

    def __init__(self, engine: ReconciliationEngine) -> None:
        self._engine = engine

    def notify_change(
        self, path: str, hunks: Iterable[Mapping[str, object]] | None = None
    ) -> None:
        """Announce that ``path`` changed, optionally with the changed ranges."""
        now = self._engine.now()
        self._engine.post(RawFsEvent(from_announcement(path, hunks, now=now)))

    def save_baseline(self, path: str) -> bool:
        """Snapshot ``path`` before the caller starts writing it."""
        return self._engine.save_baseline(path)

    def reload_request(self, path: str) -> None:
        """Reconcile ``path`` immediately."""
        self._engine.post(ReloadRequest(path))

    def check_all(self) -> int:
        """Recheck every open document; returns how many were queued."""
        return self._engine.check_all()

    def clear_highlights(self, path: str | None = None) -> int:
        return self._engine.clear_highlights(path)

    def list_open_documents(self) -> list[dict[str, object]]:
        """Open file documents with their unsaved-changes flag."""
        editor = self._engine.editor
        return [
            {"path": handle.path, "dirty": editor.is_dirty(handle)}
            for handle in editor.list_documents()
            if editor.is_valid(handle)
        ]
