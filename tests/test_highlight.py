"""Tests for resync.reconcile.highlight — applying and expiring highlights."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from resync.content.differ import ChangeHunk
from resync.observability.events import HighlightsCleared
from resync.reconcile.highlight import HighlightLifecycle

if TYPE_CHECKING:
    from collections.abc import Callable

    from conftest import FakeEditor, ManualScheduler

    from resync.editor import DocumentHandle
    from resync.observability.collector import ReconcileCollector


@pytest.fixture
def lifecycle(
    editor: FakeEditor, scheduler: ManualScheduler, collector: ReconcileCollector
) -> HighlightLifecycle:
    return HighlightLifecycle(
        editor,
        scheduler,
        tag="ResyncChange",
        expiry_delay=0.5,
        reload_guard=0.3,
        collector=collector,
    )


@pytest.fixture
def doc(editor: FakeEditor, write_file: Callable[..., str]) -> DocumentHandle:
    return editor.open(write_file("doc.txt", ["a", "b", "c", "d"]))


class TestApply:
    """apply() — replace a document's highlights."""

    def test_marks_union_of_hunks(
        self, lifecycle: HighlightLifecycle, editor: FakeEditor, doc: DocumentHandle
    ) -> None:
        count = lifecycle.apply(doc, [ChangeHunk(1, 2, "added"), ChangeHunk(2, 3, "modified")])
        assert count == 3
        assert editor.highlighted(doc.path) == {1, 2, 3}
        assert lifecycle.lines(doc) == {1, 2, 3}
        assert editor.docs[doc.path].highlights[1] == "ResyncChange"

    def test_replaces_previous_spans(
        self, lifecycle: HighlightLifecycle, editor: FakeEditor, doc: DocumentHandle
    ) -> None:
        lifecycle.apply(doc, [ChangeHunk(1, 1, "added")])
        lifecycle.apply(doc, [ChangeHunk(4, 4, "added")])
        assert editor.highlighted(doc.path) == {4}

    def test_clamps_to_document(
        self, lifecycle: HighlightLifecycle, editor: FakeEditor, doc: DocumentHandle
    ) -> None:
        assert lifecycle.apply(doc, [ChangeHunk(3, 10, "modified")]) == 2
        assert editor.highlighted(doc.path) == {3, 4}

    def test_empty_hunks(self, lifecycle: HighlightLifecycle, doc: DocumentHandle) -> None:
        assert lifecycle.apply(doc, []) == 0
        assert not lifecycle.has_highlights(doc)

    def test_closed_document_ignored(
        self, lifecycle: HighlightLifecycle, editor: FakeEditor, doc: DocumentHandle
    ) -> None:
        editor.close(doc.path)
        assert lifecycle.apply(doc, [ChangeHunk(1, 1, "added")]) == 0


class TestExpiry:
    """Highlights expire on user edits, but not on our own reload."""

    def test_edit_before_arm_delay_ignored(
        self, lifecycle: HighlightLifecycle, scheduler: ManualScheduler, doc: DocumentHandle
    ) -> None:
        lifecycle.apply(doc, [ChangeHunk(1, 1, "added")])
        scheduler.advance(0.2)
        assert lifecycle.on_text_changed(doc) is False
        assert lifecycle.has_highlights(doc)

    def test_edit_after_arm_delay_clears(
        self, lifecycle: HighlightLifecycle, scheduler: ManualScheduler,
        editor: FakeEditor, collector: ReconcileCollector, doc: DocumentHandle,
    ) -> None:
        lifecycle.apply(doc, [ChangeHunk(1, 1, "added")])
        scheduler.advance(0.5)
        assert lifecycle.on_text_changed(doc) is True
        assert editor.highlighted(doc.path) == set()
        cleared = collector.log.query(event_type=HighlightsCleared)
        assert cleared[-1].reason == "edit"

    def test_reload_guard_ignores_text_changes(
        self, lifecycle: HighlightLifecycle, scheduler: ManualScheduler, doc: DocumentHandle
    ) -> None:
        lifecycle.apply(doc, [ChangeHunk(1, 1, "added")])
        scheduler.advance(0.5)
        lifecycle.begin_reload(doc)
        lifecycle.end_reload(doc)
        assert lifecycle.is_reloading(doc)
        assert lifecycle.on_text_changed(doc) is False
        scheduler.advance(0.3)
        assert not lifecycle.is_reloading(doc)
        assert lifecycle.on_text_changed(doc) is True

    def test_overlapping_reloads_hold_guard(
        self, lifecycle: HighlightLifecycle, scheduler: ManualScheduler, doc: DocumentHandle
    ) -> None:
        lifecycle.begin_reload(doc)
        lifecycle.end_reload(doc)
        scheduler.advance(0.2)
        lifecycle.begin_reload(doc)
        lifecycle.end_reload(doc)
        scheduler.advance(0.15)
        assert lifecycle.is_reloading(doc)
        scheduler.advance(0.2)
        assert not lifecycle.is_reloading(doc)

    def test_reapply_rearms_delay(
        self, lifecycle: HighlightLifecycle, scheduler: ManualScheduler, doc: DocumentHandle
    ) -> None:
        lifecycle.apply(doc, [ChangeHunk(1, 1, "added")])
        scheduler.advance(0.5)
        lifecycle.apply(doc, [ChangeHunk(2, 2, "added")])
        assert lifecycle.on_text_changed(doc) is False


class TestClearing:
    """clear(), clear_all(), forget_path(), close()."""

    def test_clear_one(
        self, lifecycle: HighlightLifecycle, editor: FakeEditor, doc: DocumentHandle
    ) -> None:
        lifecycle.apply(doc, [ChangeHunk(1, 1, "added")])
        assert lifecycle.clear(doc) is True
        assert lifecycle.clear(doc) is False
        assert editor.highlighted(doc.path) == set()

    def test_clear_all(
        self, lifecycle: HighlightLifecycle, editor: FakeEditor,
        collector: ReconcileCollector, write_file: Callable[..., str],
    ) -> None:
        a = editor.open(write_file("a.txt", ["1"]))
        b = editor.open(write_file("b.txt", ["1"]))
        lifecycle.apply(a, [ChangeHunk(1, 1, "added")])
        lifecycle.apply(b, [ChangeHunk(1, 1, "added")])
        assert lifecycle.clear_all(reason="commit") == 2
        assert lifecycle.highlighted_documents == []
        event = collector.log.query(event_type=HighlightsCleared)[-1]
        assert (event.reason, event.documents) == ("commit", 2)

    def test_clear_all_when_empty_records_nothing(
        self, lifecycle: HighlightLifecycle, collector: ReconcileCollector
    ) -> None:
        assert lifecycle.clear_all() == 0
        assert len(collector.log) == 0

    def test_forget_path_leaves_editor_alone(
        self, lifecycle: HighlightLifecycle, editor: FakeEditor, doc: DocumentHandle
    ) -> None:
        lifecycle.apply(doc, [ChangeHunk(1, 1, "added")])
        lifecycle.forget_path(doc.path)
        assert not lifecycle.has_highlights(doc)
        assert editor.highlighted(doc.path) == {1}

    def test_close_cancels_timers(
        self, lifecycle: HighlightLifecycle, scheduler: ManualScheduler, doc: DocumentHandle
    ) -> None:
        lifecycle.apply(doc, [ChangeHunk(1, 1, "added")])
        lifecycle.begin_reload(doc)
        lifecycle.end_reload(doc)
        lifecycle.close()
        assert scheduler.pending_timers == 0

    def test_released_guards_are_not_retained(
        self, lifecycle: HighlightLifecycle, scheduler: ManualScheduler, doc: DocumentHandle
    ) -> None:
        for _ in range(50):
            lifecycle.begin_reload(doc)
            lifecycle.end_reload(doc)
            scheduler.advance(0.3)
        assert not lifecycle.is_reloading(doc)
        assert lifecycle._guard_timers == {}
