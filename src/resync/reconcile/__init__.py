"""Reconciliation layer — when and how a changed file reaches the editor.

Events flow through a single queue::

    RawFsEvent -> Debouncer -> DebouncedEvent -> ReconciliationController
                                                   |-> closed: PendingChanges
                                                   |-> dirty: skipped
                                                   |-> session: deferred
                                                   '-> reload + highlight
"""

from resync.reconcile.controller import PathState, ReconciliationController
from resync.reconcile.engine import ReconciliationEngine
from resync.reconcile.highlight import HighlightLifecycle
from resync.reconcile.queue import (
    DocumentClosed,
    DocumentEdited,
    DocumentOpened,
    DocumentSaved,
    EngineEvent,
    FocusGained,
    ReloadRequest,
    SessionEnd,
    SessionStart,
)

__all__ = [
    "DocumentClosed",
    "DocumentEdited",
    "DocumentOpened",
    "DocumentSaved",
    "EngineEvent",
    "FocusGained",
    "HighlightLifecycle",
    "PathState",
    "ReconciliationController",
    "ReconciliationEngine",
    "ReloadRequest",
    "SessionEnd",
    "SessionStart",
]
