"""Reconcile profiler — per-stage latency of each reconciliation.

Records read/reload/diff/highlight timing for one reconciliation and
emits a ``ReconcileProfile`` event to the ``EventLog``.

Thread Safety:
    The profiler is used from the control thread only (single-writer).
    Aggregate queries are protected by the underlying ``EventLog`` lock.

"""

from __future__ import annotations

import os
import sys
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from resync.observability.events import ReconcileProfile, now_ns

if TYPE_CHECKING:
    from resync.observability.log import EventLog

_STAGES = ("read", "reload", "diff", "highlight")


@dataclass(slots=True)
class _Timer:
    """Accumulates timing for a named stage."""

    name: str
    _start: float = 0.0
    elapsed_ms: float = 0.0

    def start(self) -> None:
        self._start = time.perf_counter()

    def stop(self) -> None:
        if self._start > 0:
            self.elapsed_ms += (time.perf_counter() - self._start) * 1000
            self._start = 0.0


class ReconcileProfiler:
    """Records per-stage timing for a single reconciliation.

    Usage::

        profiler = ReconcileProfiler(event_log)

        profiler.begin("/src/app.py")
        profiler.start("read")
        # ... capture baseline ...
        profiler.stop("read")
        profiler.start("reload")
        # ... editor reload ...
        profiler.stop("reload")
        profiler.finish(lines_highlighted=4)

    After ``finish()``, a ``ReconcileProfile`` event is appended to the log
    and, when verbose, a one-line summary is printed to stderr.

    """

    __slots__ = ("_log", "_path", "_t0", "_timers", "_verbose")

    def __init__(self, log: EventLog, *, verbose: bool = False) -> None:
        self._log = log
        self._verbose = verbose
        self._path = ""
        self._t0 = 0.0
        self._timers: dict[str, _Timer] = {name: _Timer(name=name) for name in _STAGES}

    def begin(self, path: str) -> None:
        """Start profiling a new reconciliation."""
        self._path = path
        self._t0 = time.perf_counter()
        for timer in self._timers.values():
            timer.elapsed_ms = 0.0

    def start(self, stage: str) -> None:
        """Start timing a named stage."""
        timer = self._timers.get(stage)
        if timer is not None:
            timer.start()

    def stop(self, stage: str) -> None:
        """Stop timing a named stage."""
        timer = self._timers.get(stage)
        if timer is not None:
            timer.stop()

    def finish(self, *, lines_highlighted: int = 0) -> ReconcileProfile:
        """Finish profiling and emit the ``ReconcileProfile`` event.

        Returns the profile for testing / inspection.

        """
        total_ms = (time.perf_counter() - self._t0) * 1000 if self._t0 > 0 else 0.0

        profile = ReconcileProfile(
            path=self._path,
            lines_highlighted=lines_highlighted,
            read_ms=self._timers["read"].elapsed_ms,
            reload_ms=self._timers["reload"].elapsed_ms,
            diff_ms=self._timers["diff"].elapsed_ms,
            highlight_ms=self._timers["highlight"].elapsed_ms,
            total_ms=total_ms,
            timestamp_ns=now_ns(),
        )
        self._t0 = 0.0
        self._log.append(profile)

        if self._verbose:
            self._print_summary(profile)

        return profile

    def _print_summary(self, p: ReconcileProfile) -> None:
        """Print a one-line timing summary to stderr."""
        name = os.path.basename(p.path) or p.path
        lines = "line" if p.lines_highlighted == 1 else "lines"
        stages = (
            f"read: {p.read_ms:.0f}ms, "
            f"reload: {p.reload_ms:.0f}ms, "
            f"diff: {p.diff_ms:.0f}ms, "
            f"highlight: {p.highlight_ms:.0f}ms"
        )
        print(
            f"  [{p.total_ms:.0f}ms] {name} -> "
            f"{p.lines_highlighted} {lines} highlighted ({stages})",
            file=sys.stderr,
        )


def compute_aggregate_stats(
    log: EventLog,
    *,
    limit: int = 100,
) -> dict:
    """Compute latency statistics from recent ``ReconcileProfile`` events.

    Returns a dict with p50, p95, p99, and per-stage averages.

    """
    profiles = log.query(event_type=ReconcileProfile, limit=limit)
    if not profiles:
        return {"count": 0}

    totals = sorted(p.total_ms for p in profiles)
    count = len(totals)

    def percentile(data: list[float], pct: float) -> float:
        idx = int(len(data) * pct / 100)
        return data[min(idx, len(data) - 1)]

    return {
        "count": count,
        "total_ms": {
            "p50": round(percentile(totals, 50), 1),
            "p95": round(percentile(totals, 95), 1),
            "p99": round(percentile(totals, 99), 1),
            "min": round(totals[0], 1),
            "max": round(totals[-1], 1),
        },
        "avg_by_stage_ms": {
            stage: round(sum(getattr(p, f"{stage}_ms") for p in profiles) / count, 1)
            for stage in _STAGES
        },
    }
