"""Commit detection from the VCS index modification time.

A commit rewrites the index file. After a commit, "what the agent
changed" is no longer meaningful, so every highlight is cleared.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class CommitDetector:
    """Reports a commit when the index mtime strictly increases.

    Args:
        index_path: The VCS index file (``.git/index``).

    """

    __slots__ = ("_index_path", "_last_mtime_ns")

    def __init__(self, index_path: Path) -> None:
        self._index_path = index_path
        self._last_mtime_ns: int | None = self._stat()

    @property
    def index_path(self) -> Path:
        return self._index_path

    def check(self) -> bool:
        """Re-stat the index. Returns True if it changed since the last check.

        The first successful stat only establishes the reference point.
        A missing index is not an error; the previous mtime is kept.
        """
        mtime_ns = self._stat()
        if mtime_ns is None:
            return False
        previous = self._last_mtime_ns
        self._last_mtime_ns = mtime_ns
        return previous is not None and mtime_ns > previous

    def _stat(self) -> int | None:
        try:
            return self._index_path.stat().st_mtime_ns
        except OSError:
            return None
