"""Content layer — what a file looked like, and what changed since.

Handles snapshots of file content, line diffing, file watching, the
marker file, and normalizing every change source into one event shape.
"""

from resync.content.differ import ChangeHunk, diff_lines
from resync.content.marker import MarkerFile
from resync.content.sources import ChangeEvent
from resync.content.store import ContentStore, Snapshot
from resync.content.watcher import FileWatcher, FsChange

__all__ = [
    "ChangeEvent",
    "ChangeHunk",
    "ContentStore",
    "FileWatcher",
    "FsChange",
    "MarkerFile",
    "Snapshot",
    "diff_lines",
]
