"""Shared test fixtures for resync."""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from resync.config import ResyncConfig
from resync.content.store import split_lines
from resync.editor import DocumentHandle, Viewport
from resync.observability.collector import ReconcileCollector
from resync.observability.log import EventLog

# ---------------------------------------------------------------------------
# Manual scheduler
# ---------------------------------------------------------------------------


class _Timer:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic stand-in for the asyncio loop.

    Time only moves when ``advance`` is called; due timers run in
    deadline order, including timers scheduled by other timers.
    """

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self._heap: list[tuple[float, int, _Timer, Any, tuple[Any, ...]]] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Any, *args: Any) -> _Timer:
        timer = _Timer()
        heapq.heappush(self._heap, (self.now + delay, next(self._seq), timer, callback, args))
        return timer

    def call_soon_threadsafe(self, callback: Any, *args: Any) -> None:
        callback(*args)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while self._heap and self._heap[0][0] <= target:
            when, _, timer, callback, args = heapq.heappop(self._heap)
            self.now = max(self.now, when)
            if not timer.cancelled:
                callback(*args)
        self.now = target

    @property
    def pending_timers(self) -> int:
        return sum(1 for entry in self._heap if not entry[2].cancelled)


# ---------------------------------------------------------------------------
# Fake editor
# ---------------------------------------------------------------------------


@dataclass
class FakeDocument:
    handle: DocumentHandle
    lines: list[str]
    dirty: bool = False
    highlights: dict[int, str] = field(default_factory=dict)


class FakeEditor:
    """In-memory editor implementing the ``Editor`` protocol.

    Documents are loaded from (and reloaded from) real files on disk.
    """

    def __init__(self) -> None:
        self.docs: dict[str, FakeDocument] = {}
        self.viewports: dict[int, tuple[str, int, int]] = {}
        self.notices: list[tuple[str, str]] = []
        self.reloads: list[str] = []
        self.reload_result = True
        self.reload_exception: Exception | None = None
        self._ids = itertools.count(1)

    # ----- Test helpers -----

    def open(self, path: str | Path) -> DocumentHandle:
        path = str(path)
        handle = DocumentHandle(id=next(self._ids), path=path)
        self.docs[path] = FakeDocument(handle=handle, lines=self._read(path))
        return handle

    def close(self, path: str | Path) -> None:
        del self.docs[str(path)]

    def type_text(self, path: str | Path, lines: list[str]) -> None:
        doc = self.docs[str(path)]
        doc.lines = list(lines)
        doc.dirty = True

    def save(self, path: str | Path) -> None:
        doc = self.docs[str(path)]
        Path(doc.handle.path).write_text("\n".join(doc.lines) + "\n")
        doc.dirty = False

    def add_viewport(self, path: str | Path, line: int, col: int) -> int:
        vid = 100 + len(self.viewports)
        self.viewports[vid] = (str(path), line, col)
        return vid

    def highlighted(self, path: str | Path) -> set[int]:
        return set(self.docs[str(path)].highlights)

    def messages(self, level: str | None = None) -> list[str]:
        return [m for m, lvl in self.notices if level is None or lvl == level]

    @staticmethod
    def _read(path: str) -> list[str]:
        return list(split_lines(Path(path).read_text()))

    def _doc(self, handle: DocumentHandle) -> FakeDocument:
        doc = self.docs.get(handle.path)
        if doc is None or doc.handle.id != handle.id:
            raise KeyError(handle)
        return doc

    # ----- Editor protocol -----

    def find_document(self, path: str) -> DocumentHandle | None:
        doc = self.docs.get(path)
        return doc.handle if doc is not None else None

    def is_valid(self, handle: DocumentHandle) -> bool:
        doc = self.docs.get(handle.path)
        return doc is not None and doc.handle.id == handle.id

    def is_dirty(self, handle: DocumentHandle) -> bool:
        return self._doc(handle).dirty

    def get_lines(self, handle: DocumentHandle) -> list[str]:
        return list(self._doc(handle).lines)

    def reload_from_disk(self, handle: DocumentHandle) -> bool:
        self.reloads.append(handle.path)
        if self.reload_exception is not None:
            raise self.reload_exception
        if not self.reload_result:
            return False
        self._doc(handle).lines = self._read(handle.path)
        return True

    def get_viewports_showing(self, handle: DocumentHandle) -> list[Viewport]:
        return [
            Viewport(id=vid, line=line, col=col)
            for vid, (path, line, col) in self.viewports.items()
            if path == handle.path
        ]

    def set_viewport_cursor(self, viewport_id: int, line: int, col: int) -> None:
        path, _, _ = self.viewports[viewport_id]
        self.viewports[viewport_id] = (path, line, col)

    def apply_line_highlight(self, handle: DocumentHandle, line: int, tag: str) -> None:
        self._doc(handle).highlights[line] = tag

    def clear_highlights(self, handle: DocumentHandle) -> None:
        self._doc(handle).highlights.clear()

    def list_documents(self) -> list[DocumentHandle]:
        return [doc.handle for doc in self.docs.values()]

    def notify(self, message: str, level: str = "info") -> None:
        self.notices.append((message, level))


# ---------------------------------------------------------------------------
# Fake watcher
# ---------------------------------------------------------------------------


class FakeWatcher:
    """Records track/untrack calls; ``changes`` yields queued changes once."""

    def __init__(self) -> None:
        self.tracked: set[str] = set()
        self.started = False
        self.stopped = False
        self.queued: list[Any] = []

    def track(self, path: str) -> None:
        self.tracked.add(path)

    def untrack(self, path: str) -> None:
        self.tracked.discard(path)

    def start(self, loop: Any = None) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    async def changes(self):  # noqa: ANN201
        for change in self.queued:
            yield change


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def editor() -> FakeEditor:
    return FakeEditor()


@pytest.fixture
def fake_watcher() -> FakeWatcher:
    return FakeWatcher()


@pytest.fixture
def collector() -> ReconcileCollector:
    return ReconcileCollector(EventLog())


@pytest.fixture
def config(tmp_path: Path) -> ResyncConfig:
    """A ResyncConfig rooted at a temp directory with a local marker file."""
    return ResyncConfig(root=tmp_path, marker_file=Path(".resync-changes"))


@pytest.fixture
def write_file(tmp_path: Path):  # noqa: ANN201
    """Write ``lines`` to ``name`` under tmp_path; returns the absolute path string."""

    def _write(name: str, lines: list[str]) -> str:
        path = tmp_path / name
        path.write_text("".join(f"{line}\n" for line in lines))
        return str(path)

    return _write
