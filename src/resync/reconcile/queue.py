"""Typed engine events and the single-threaded queue that serializes them.

Every state transition in the engine starts as one of these events.
Watch threads, timers, and editor hooks never mutate engine state
directly; they post an event, and the queue hands events to a single
handler one at a time. An event posted while another is being handled
waits behind it instead of re-entering the handler.
"""

from __future__ import annotations

import sys
import traceback
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

if TYPE_CHECKING:
    from collections.abc import Callable

    from resync._types import TrackedPath
    from resync.content.sources import ChangeEvent


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """The control loop's clock and timers.

    ``asyncio.AbstractEventLoop`` satisfies this protocol directly.
    """

    def time(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> Any: ...


# ---------------------------------------------------------------------------
# Change flow
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawFsEvent:
    """An un-debounced change for one path."""

    change: ChangeEvent


@dataclass(frozen=True, slots=True)
class DebouncedEvent:
    """A change whose quiet window elapsed; ready to reconcile."""

    change: ChangeEvent


@dataclass(frozen=True, slots=True)
class ReloadRequest:
    """Reconcile ``path`` now, bypassing debounce and cooldown."""

    path: TrackedPath


@dataclass(frozen=True, slots=True)
class MarkerTouched:
    """The marker file may have new content."""


@dataclass(frozen=True, slots=True)
class VcsIndexTouched:
    """The VCS index file may have changed (possible commit)."""


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SessionStart:
    """An agent session began; defer reloads of open documents."""


@dataclass(frozen=True, slots=True)
class SessionEnd:
    """The agent exited; flush deferred paths after the settle delay."""


@dataclass(frozen=True, slots=True)
class SessionFlush:
    """The settle delay elapsed; reconcile every deferred path once."""


# ---------------------------------------------------------------------------
# Editor hooks
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DocumentOpened:
    path: TrackedPath


@dataclass(frozen=True, slots=True)
class DocumentSaved:
    path: TrackedPath


@dataclass(frozen=True, slots=True)
class DocumentClosed:
    path: TrackedPath


@dataclass(frozen=True, slots=True)
class DocumentEdited:
    """The document's text changed (user edit or our own reload)."""

    path: TrackedPath


@dataclass(frozen=True, slots=True)
class FocusGained:
    """The editor regained focus; re-check the VCS index."""


EngineEvent: TypeAlias = (
    RawFsEvent
    | DebouncedEvent
    | ReloadRequest
    | MarkerTouched
    | VcsIndexTouched
    | SessionStart
    | SessionEnd
    | SessionFlush
    | DocumentOpened
    | DocumentSaved
    | DocumentClosed
    | DocumentEdited
    | FocusGained
)


class EventQueue:
    """FIFO of engine events drained by a single handler.

    ``post`` must be called on the control thread. The first ``post``
    drains the queue; nested posts from inside the handler are appended
    and handled after the current event. A handler exception is reported
    to stderr and does not stop the drain.

    Args:
        handler: Called once per event, in posting order.

    """

    __slots__ = ("_draining", "_events", "_handler")

    def __init__(self, handler: Callable[[EngineEvent], None]) -> None:
        self._handler = handler
        self._events: deque[EngineEvent] = deque()
        self._draining = False

    def __len__(self) -> int:
        return len(self._events)

    def post(self, event: EngineEvent) -> None:
        self._events.append(event)
        if self._draining:
            return
        self._draining = True
        try:
            while self._events:
                current = self._events.popleft()
                try:
                    self._handler(current)
                except Exception as exc:
                    print(
                        f"  Engine error ({type(current).__name__}): {exc}",
                        file=sys.stderr,
                    )
                    traceback.print_exc(file=sys.stderr)
        finally:
            self._draining = False
