"""Debounce and cooldown — one trigger per write burst, none for our own reloads.

A single logical agent write can produce several low-level filesystem
notifications (truncate, write, rename, attribute change). The
``Debouncer`` restarts a per-path quiet-window timer on each one and
fires only the latest event once the path has been quiet.

The ``Cooldown`` is a feedback-loop guard: reloading a document touches
it, and the watcher would report that touch as an external change.
Events observed within the cooldown window after a completed reload are
dropped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from resync._types import TrackedPath
    from resync.content.sources import ChangeEvent
    from resync.reconcile.queue import Scheduler, TimerHandle


class Cooldown:
    """Per-path suppression deadline after a completed reload.

    Args:
        scheduler: Control loop clock.
        window: Cooldown length in seconds.

    """

    __slots__ = ("_until", "_scheduler", "_window")

    def __init__(self, scheduler: Scheduler, window: float) -> None:
        self._scheduler = scheduler
        self._window = window
        self._until: dict[TrackedPath, float] = {}

    def start(self, path: TrackedPath) -> None:
        """Begin the cooldown for ``path`` as of now."""
        self._until[path] = self._scheduler.time() + self._window

    def suppresses(self, path: TrackedPath, observed_at: float) -> bool:
        """Whether an event for ``path`` observed at ``observed_at`` is dropped."""
        deadline = self._until.get(path)
        if deadline is None:
            return False
        if observed_at < deadline:
            return True
        del self._until[path]
        return False

    def clear(self) -> None:
        self._until.clear()


class Debouncer:
    """Per-path quiet-window coalescing.

    On each event for a path the pending timer is cancelled and restarted;
    when it elapses without a newer event, ``on_fire`` receives the path's
    latest event. Events suppressed by the cooldown never start a timer,
    and a timer that fires into a cooldown that began meanwhile is dropped.

    Args:
        scheduler: Control loop timers.
        quiet: Quiet window in seconds.
        cooldown: Post-reload suppression.
        on_fire: Receives each debounced event.

    """

    __slots__ = ("_cooldown", "_latest", "_on_fire", "_quiet", "_scheduler", "_timers")

    def __init__(
        self,
        scheduler: Scheduler,
        quiet: float,
        cooldown: Cooldown,
        on_fire: Callable[[ChangeEvent], None],
    ) -> None:
        self._scheduler = scheduler
        self._quiet = quiet
        self._cooldown = cooldown
        self._on_fire = on_fire
        self._timers: dict[TrackedPath, TimerHandle] = {}
        self._latest: dict[TrackedPath, ChangeEvent] = {}

    def push(self, event: ChangeEvent) -> bool:
        """Record a raw event. Returns False if the cooldown dropped it."""
        path = event.path
        if self._cooldown.suppresses(path, event.observed_at):
            return False
        timer = self._timers.pop(path, None)
        if timer is not None:
            timer.cancel()
        self._latest[path] = event
        self._timers[path] = self._scheduler.call_later(self._quiet, self._fire, path)
        return True

    def is_pending(self, path: TrackedPath) -> bool:
        return path in self._timers

    def cancel(self, path: TrackedPath) -> None:
        """Forget any pending event for ``path``."""
        timer = self._timers.pop(path, None)
        if timer is not None:
            timer.cancel()
        self._latest.pop(path, None)

    def cancel_all(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._latest.clear()

    def _fire(self, path: TrackedPath) -> None:
        self._timers.pop(path, None)
        event = self._latest.pop(path, None)
        if event is None:
            return
        if self._cooldown.suppresses(path, event.observed_at):
            return
        self._on_fire(event)
