"""Agent session gating.

While an agent session is active, open documents are not reloaded on
every save; the agent may rewrite the same file many times in a row.
Touched paths are remembered and flushed once when the session ends.
Deferral continues through the settle delay between the end of the
session and the flush, so late writes cannot slip in a second reload.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from resync._types import TrackedPath


class Session:
    """Whether an agent is currently mutating files, and what it touched."""

    __slots__ = ("_active", "_ending", "_touched")

    def __init__(self) -> None:
        self._active = False
        self._ending = False
        self._touched: list[TrackedPath] = []

    @property
    def active(self) -> bool:
        """True from start until the flush, including the settle delay."""
        return self._active

    @property
    def ending(self) -> bool:
        return self._ending

    def start(self) -> None:
        self._active = True
        self._ending = False
        self._touched = []

    def end(self) -> bool:
        """Mark the session as ending. Returns False if none was active."""
        if not self._active or self._ending:
            return False
        self._ending = True
        return True

    def touch(self, path: TrackedPath) -> None:
        if path not in self._touched:
            self._touched.append(path)

    def finish(self) -> list[TrackedPath]:
        """Close the session and hand over the touched paths, once."""
        touched = self._touched
        self._active = False
        self._ending = False
        self._touched = []
        return touched
