"""Event model for reconciliation observability.

Every decision the engine makes about a path (store, diff, defer, skip,
reload, clear) is recorded as a frozen dataclass with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal, TypeAlias


# ---------------------------------------------------------------------------
# Content events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SnapshotStored:
    """A snapshot was stored for a path.

    Attributes:
        path: Tracked path.
        line_count: Number of lines in the snapshot.
        source: Where the content came from.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    line_count: int
    source: Literal["document", "disk", "reload", "baseline"]
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ContentDiffed:
    """Two versions of a path were diffed.

    Attributes:
        path: Tracked path.
        hunks: Number of hunks produced.
        added: Lines in ``added`` hunks.
        modified: Lines in ``modified`` hunks.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    hunks: int
    added: int
    modified: int
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Reconciliation events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ChangeDeferred:
    """A change was queued instead of applied.

    Attributes:
        path: Tracked path.
        reason: ``closed`` (file not open) or ``session`` (agent active).
        whole_file: True when no line detail could be kept.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    reason: Literal["closed", "session"]
    whole_file: bool
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ReconcileSkipped:
    """A change was not reconciled.

    Attributes:
        path: Tracked path.
        reason: Why the engine let it go.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    reason: Literal["dirty", "reentrant", "unreadable", "closed", "unchanged"]
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class DocumentReloaded:
    """An open document was reloaded from disk.

    Attributes:
        path: Tracked path.
        success: False if the editor refused or failed the reload.
        lines_highlighted: Lines marked after the reload.
        duration_ms: Time from baseline capture to highlight completion.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    success: bool
    lines_highlighted: int
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class HighlightsCleared:
    """Highlights were removed.

    Attributes:
        path: Tracked path, or ``*`` for a global clear.
        reason: Which expiry trigger fired.
        documents: Number of documents cleared.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    reason: Literal["edit", "commit", "session", "manual"]
    documents: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ReconcileProfile:
    """Per-stage timing of one reconciliation.

    Attributes:
        path: Tracked path that triggered the reconciliation.
        lines_highlighted: Lines marked at the end.
        read_ms: Time capturing the baseline or reading disk.
        reload_ms: Time inside the editor's reload.
        diff_ms: Time diffing.
        highlight_ms: Time applying highlights.
        total_ms: End-to-end time.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    lines_highlighted: int
    read_ms: float
    reload_ms: float
    diff_ms: float
    highlight_ms: float
    total_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

ReconcileEvent: TypeAlias = (
    SnapshotStored
    | ContentDiffed
    | ChangeDeferred
    | ReconcileSkipped
    | DocumentReloaded
    | HighlightsCleared
    | ReconcileProfile
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
