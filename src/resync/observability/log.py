"""Event log — the engine's bounded decision history.

Holds the most recent ``ReconcileEvent`` objects, oldest dropped first,
and answers filtered queries over them.

Thread Safety:
    Appends and queries share one ``threading.Lock``, so a status command
    or a test may read the log from another thread.

"""

import threading
from collections import deque

from resync.observability.events import ReconcileEvent


class EventLog:
    """Ring buffer of reconciliation events.

    Args:
        max_events: How many events to keep before the oldest are dropped.

    """

    __slots__ = ("_events", "_lock")

    def __init__(self, max_events: int = 5_000) -> None:
        self._events: deque[ReconcileEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: ReconcileEvent) -> None:
        with self._lock:
            self._events.append(event)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        path: str | None = None,
        limit: int = 100,
    ) -> list[ReconcileEvent]:
        """Return matching events, most recent first.

        Args:
            event_type: Keep only instances of this event class.
            since_ns: Keep only events stamped at or after this time.
            path: Keep only events for exactly this path.
            limit: Stop after this many matches.

        """
        with self._lock:
            snapshot = list(self._events)
        matches: list[ReconcileEvent] = []
        for event in reversed(snapshot):
            if len(matches) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if event.timestamp_ns < since_ns:
                continue
            if path is not None and event.path != path:
                continue
            matches.append(event)
        return matches

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
