"""Reconciliation observability — what the engine decided, and how fast.

Records every store/diff/defer/skip/reload/clear decision as a frozen
dataclass with a nanosecond timestamp, in a bounded, lock-protected log.

Quick Start:
    >>> from resync.observability import EventLog, ReconcileCollector
    >>> log = EventLog()
    >>> collector = ReconcileCollector(log)
    >>> # Pass collector to ReconciliationEngine(..., collector=collector)
    >>> # then inspect log.query(event_type=DocumentReloaded)

"""

from resync.observability.collector import ReconcileCollector
from resync.observability.events import (
    ChangeDeferred,
    ContentDiffed,
    DocumentReloaded,
    HighlightsCleared,
    ReconcileEvent,
    ReconcileProfile,
    ReconcileSkipped,
    SnapshotStored,
    now_ns,
)
from resync.observability.log import EventLog
from resync.observability.profiler import ReconcileProfiler, compute_aggregate_stats

__all__ = [
    "ChangeDeferred",
    "ContentDiffed",
    "DocumentReloaded",
    "EventLog",
    "HighlightsCleared",
    "ReconcileCollector",
    "ReconcileEvent",
    "ReconcileProfile",
    "ReconcileProfiler",
    "ReconcileSkipped",
    "SnapshotStored",
    "compute_aggregate_stats",
    "now_ns",
]
