"""Highlight lifecycle — transient marks on reconciled lines.

``apply`` replaces a document's highlights with the lines of the given
hunks. Highlights expire when any of these happens:

- the user edits the document (edits caused by our own reload are ignored),
- a VCS commit is detected,
- a new agent session starts,
- the user clears them explicitly.

Edit-expiry is armed only after ``expiry_delay`` and the reload guard is
released only ``reload_guard`` after the reload, because the editor
dispatches the reload's own text-change notifications asynchronously.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from resync.content.differ import changed_lines

if TYPE_CHECKING:
    from collections.abc import Iterable

    from resync._types import HighlightTag, TrackedPath
    from resync.content.differ import ChangeHunk
    from resync.editor import DocumentHandle, Editor
    from resync.observability.collector import ReconcileCollector
    from resync.reconcile.queue import Scheduler, TimerHandle


class HighlightLifecycle:
    """Applies and expires change highlights.

    Args:
        editor: Host editor.
        scheduler: Control loop timers.
        tag: Attribute tag for highlighted lines.
        expiry_delay: Seconds before user-edit expiry is armed.
        reload_guard: Seconds the reload-in-progress guard outlives a reload.
        collector: Optional observability sink.

    """

    def __init__(
        self,
        editor: Editor,
        scheduler: Scheduler,
        *,
        tag: HighlightTag,
        expiry_delay: float,
        reload_guard: float,
        collector: ReconcileCollector | None = None,
    ) -> None:
        self._editor = editor
        self._scheduler = scheduler
        self._tag = tag
        self._expiry_delay = expiry_delay
        self._reload_guard = reload_guard
        self._collector = collector
        # Highlighted line numbers per document.
        self._spans: dict[int, tuple[DocumentHandle, frozenset[int]]] = {}
        self._armed: set[int] = set()
        self._arm_timers: dict[int, TimerHandle] = {}
        self._reloading: dict[int, int] = {}
        # Guard-release timers per document, oldest first.
        self._guard_timers: dict[int, list[TimerHandle]] = {}

    def apply(self, handle: DocumentHandle, hunks: Iterable[ChangeHunk]) -> int:
        """Replace the highlights of ``handle`` with the lines of ``hunks``.

        Lines beyond the document end are skipped. Returns the number of
        lines highlighted.

        """
        if not self._editor.is_valid(handle):
            return 0
        self._clear_document(handle)

        line_count = len(self._editor.get_lines(handle))
        lines = frozenset(n for n in changed_lines(hunks) if 1 <= n <= line_count)
        if not lines:
            return 0

        for line in sorted(lines):
            self._editor.apply_line_highlight(handle, line, self._tag)
        self._spans[handle.id] = (handle, lines)
        self._arm_timers[handle.id] = self._scheduler.call_later(
            self._expiry_delay, self._arm, handle.id
        )
        return len(lines)

    def lines(self, handle: DocumentHandle) -> frozenset[int]:
        """Currently highlighted lines of ``handle``."""
        entry = self._spans.get(handle.id)
        return entry[1] if entry is not None else frozenset()

    def has_highlights(self, handle: DocumentHandle) -> bool:
        return handle.id in self._spans

    @property
    def highlighted_documents(self) -> list[DocumentHandle]:
        return [handle for handle, _ in self._spans.values()]

    def clear(self, handle: DocumentHandle, *, reason: str = "manual") -> bool:
        """Clear the highlights of one document. Returns False if it had none."""
        if handle.id not in self._spans:
            return False
        self._clear_document(handle)
        if self._collector is not None:
            self._collector.record_highlights_cleared(handle.path, reason=reason, documents=1)
        return True

    def clear_all(self, *, reason: str = "manual") -> int:
        """Clear every highlight. Returns the number of documents cleared."""
        handles = self.highlighted_documents
        for handle in handles:
            self._clear_document(handle)
        if handles and self._collector is not None:
            self._collector.record_highlights_cleared("*", reason=reason, documents=len(handles))
        return len(handles)

    # ----- Reload guard -----

    def begin_reload(self, handle: DocumentHandle) -> None:
        """Attribute text changes on ``handle`` to our reload from now on."""
        self._reloading[handle.id] = self._reloading.get(handle.id, 0) + 1

    def end_reload(self, handle: DocumentHandle) -> None:
        """Release the reload guard after ``reload_guard`` seconds."""
        timer = self._scheduler.call_later(self._reload_guard, self._release, handle.id)
        self._guard_timers.setdefault(handle.id, []).append(timer)

    def is_reloading(self, handle: DocumentHandle) -> bool:
        return handle.id in self._reloading

    # ----- Expiry triggers -----

    def on_text_changed(self, handle: DocumentHandle) -> bool:
        """A document's text changed. Returns True if highlights expired.

        Ignored while our own reload is in flight and before expiry is armed.
        """
        if handle.id in self._reloading or handle.id not in self._armed:
            return False
        return self.clear(handle, reason="edit")

    def forget(self, handle: DocumentHandle) -> None:
        """Drop bookkeeping for a closed document without touching the editor."""
        self._spans.pop(handle.id, None)
        self._armed.discard(handle.id)
        timer = self._arm_timers.pop(handle.id, None)
        if timer is not None:
            timer.cancel()

    def forget_path(self, path: TrackedPath) -> None:
        """``forget`` every document showing ``path``."""
        for handle in self.highlighted_documents:
            if handle.path == path:
                self.forget(handle)

    def close(self) -> None:
        """Cancel every pending timer."""
        for timers in self._guard_timers.values():
            for timer in timers:
                timer.cancel()
        for timer in self._arm_timers.values():
            timer.cancel()
        self._guard_timers.clear()
        self._arm_timers.clear()
        self._reloading.clear()

    def _clear_document(self, handle: DocumentHandle) -> None:
        self.forget(handle)
        if self._editor.is_valid(handle):
            self._editor.clear_highlights(handle)

    def _arm(self, doc_id: int) -> None:
        self._arm_timers.pop(doc_id, None)
        if doc_id in self._spans:
            self._armed.add(doc_id)

    def _release(self, doc_id: int) -> None:
        # Every guard uses the same delay, so timers fire oldest first.
        timers = self._guard_timers.get(doc_id)
        if timers:
            timers.pop(0)
            if not timers:
                del self._guard_timers[doc_id]
        remaining = self._reloading.get(doc_id, 0) - 1
        if remaining > 0:
            self._reloading[doc_id] = remaining
        else:
            self._reloading.pop(doc_id, None)
