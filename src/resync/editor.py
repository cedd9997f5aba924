"""Editor integration contract.

The engine never owns documents. It talks to the host editor through the
``Editor`` protocol and holds only ``DocumentHandle`` values: an id plus
the path, checked with ``Editor.is_valid`` before every use because the
user can close a document at any moment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from resync._types import HighlightTag, NoticeLevel, TrackedPath, ViewportID


@dataclass(frozen=True, slots=True)
class DocumentHandle:
    """Weak reference to an editor buffer.

    Attributes:
        id: Editor-assigned buffer id.
        path: Canonical absolute path of the file the buffer shows.

    """

    id: int
    path: TrackedPath


@dataclass(frozen=True, slots=True)
class Viewport:
    """A window showing a document, with its cursor position.

    Attributes:
        id: Editor-assigned viewport id.
        line: Cursor line (1-based).
        col: Cursor column (0-based byte offset).

    """

    id: ViewportID
    line: int
    col: int


class Editor(Protocol):
    """What the engine needs from the host editor."""

    def find_document(self, path: TrackedPath) -> DocumentHandle | None:
        """Return the open document for ``path``, if any."""
        ...

    def is_valid(self, handle: DocumentHandle) -> bool:
        """Whether the document behind ``handle`` still exists."""
        ...

    def is_dirty(self, handle: DocumentHandle) -> bool:
        """Whether the document has unsaved local modifications."""
        ...

    def get_lines(self, handle: DocumentHandle) -> Sequence[str]: ...

    def reload_from_disk(self, handle: DocumentHandle) -> bool:
        """Replace the document content with the file on disk.

        Returns False if the editor refused the reload.
        """
        ...

    def get_viewports_showing(self, handle: DocumentHandle) -> Sequence[Viewport]: ...

    def set_viewport_cursor(self, viewport_id: ViewportID, line: int, col: int) -> None: ...

    def apply_line_highlight(
        self, handle: DocumentHandle, line: int, tag: HighlightTag
    ) -> None: ...

    def clear_highlights(self, handle: DocumentHandle) -> None: ...

    def list_documents(self) -> Sequence[DocumentHandle]:
        """All open file documents."""
        ...

    def notify(self, message: str, level: NoticeLevel = "info") -> None:
        """Show a user-facing notice."""
        ...


def restore_viewports(
    editor: Editor,
    handle: DocumentHandle,
    viewports: Sequence[Viewport],
) -> None:
    """Put cursors back after a reload, clamped to the new content.

    Line is clamped to the new line count and column to the length of
    that line. Best-effort: a viewport that vanished is skipped.
    """
    if not viewports:
        return
    lines = editor.get_lines(handle)
    line_count = max(len(lines), 1)
    for vp in viewports:
        line = max(min(vp.line, line_count), 1)
        text = lines[line - 1] if lines else ""
        col = min(vp.col, len(text.encode("utf-8")))
        try:
            editor.set_viewport_cursor(vp.id, line, col)
        except (KeyError, ValueError):
            continue
