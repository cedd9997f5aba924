"""Tests for resync.observability.profiler — per-stage reconcile timing."""

from __future__ import annotations

import io
import sys
from unittest.mock import patch

import pytest

from resync.observability.events import ReconcileProfile
from resync.observability.log import EventLog
from resync.observability.profiler import (
    ReconcileProfiler,
    compute_aggregate_stats,
)


def _run(profiler: ReconcileProfiler, path: str, lines: int = 1) -> ReconcileProfile:
    profiler.begin(path)
    for stage in ("read", "reload", "diff", "highlight"):
        profiler.start(stage)
        profiler.stop(stage)
    return profiler.finish(lines_highlighted=lines)


class TestReconcileProfiler:
    """Tests for the reconcile profiler."""

    def test_begin_and_finish_emits_event(self) -> None:
        log = EventLog()
        profiler = ReconcileProfiler(log, verbose=False)
        profile = _run(profiler, "/src/app.py", lines=2)

        assert isinstance(profile, ReconcileProfile)
        assert profile.path == "/src/app.py"
        assert profile.lines_highlighted == 2
        assert profile.total_ms >= 0
        assert log.query(event_type=ReconcileProfile) == [profile]

    def test_per_stage_timing_non_negative(self) -> None:
        profile = _run(ReconcileProfiler(EventLog()), "/a.py")
        assert profile.read_ms >= 0
        assert profile.reload_ms >= 0
        assert profile.diff_ms >= 0
        assert profile.highlight_ms >= 0

    def test_unknown_stage_ignored(self) -> None:
        profiler = ReconcileProfiler(EventLog())
        profiler.begin("/a.py")
        profiler.start("render")
        profiler.stop("render")
        assert profiler.finish().path == "/a.py"

    def test_begin_resets_stages(self) -> None:
        profiler = ReconcileProfiler(EventLog())
        profiler.begin("/a.py")
        profiler.start("diff")
        profiler.stop("diff")
        profiler.finish()
        profiler.begin("/b.py")
        assert profiler.finish().diff_ms == 0.0

    def test_finish_without_begin(self) -> None:
        assert ReconcileProfiler(EventLog()).finish().total_ms == 0.0

    def test_verbose_prints_summary(self) -> None:
        profiler = ReconcileProfiler(EventLog(), verbose=True)
        buf = io.StringIO()
        with patch.object(sys, "stderr", buf):
            _run(profiler, "/src/app.py", lines=1)
        output = buf.getvalue()
        assert "app.py" in output
        assert "1 line highlighted" in output
        assert "reload:" in output

    def test_silent_when_not_verbose(self) -> None:
        profiler = ReconcileProfiler(EventLog(), verbose=False)
        buf = io.StringIO()
        with patch.object(sys, "stderr", buf):
            _run(profiler, "/src/app.py")
        assert buf.getvalue() == ""

    def test_multiple_profiles(self) -> None:
        log = EventLog()
        profiler = ReconcileProfiler(log)
        for i in range(3):
            _run(profiler, f"/{i}.py")
        assert len(log.query(event_type=ReconcileProfile)) == 3


class TestAggregateStats:
    """Tests for compute_aggregate_stats."""

    def test_empty_log(self) -> None:
        assert compute_aggregate_stats(EventLog()) == {"count": 0}

    def test_basic_stats(self) -> None:
        log = EventLog()
        for total in (10.0, 20.0, 30.0):
            log.append(ReconcileProfile(
                path="/a.py", lines_highlighted=1, read_ms=1.0, reload_ms=4.0,
                diff_ms=2.0, highlight_ms=3.0, total_ms=total, timestamp_ns=0,
            ))
        stats = compute_aggregate_stats(log)
        assert stats["count"] == 3
        assert stats["total_ms"]["min"] == 10.0
        assert stats["total_ms"]["max"] == 30.0
        assert stats["avg_by_stage_ms"] == {
            "read": 1.0, "reload": 4.0, "diff": 2.0, "highlight": 3.0,
        }

    def test_percentiles_are_ordered(self) -> None:
        log = EventLog()
        for i in range(50):
            log.append(ReconcileProfile(
                path="/a.py", lines_highlighted=0, read_ms=0.0, reload_ms=0.0,
                diff_ms=0.0, highlight_ms=0.0, total_ms=float(i), timestamp_ns=0,
            ))
        totals = compute_aggregate_stats(log)["total_ms"]
        assert totals["p50"] <= totals["p95"] <= totals["p99"]

    def test_ignores_other_events(self) -> None:
        from resync.observability.events import SnapshotStored

        log = EventLog()
        log.append(SnapshotStored(path="/a.py", line_count=1, source="disk", timestamp_ns=0))
        assert compute_aggregate_stats(log)["count"] == 0


class TestReconcileProfileEvent:
    """Tests for the ReconcileProfile event dataclass."""

    def test_frozen(self) -> None:
        profile = ReconcileProfile(
            path="/a.py", lines_highlighted=0, read_ms=0.0, reload_ms=0.0,
            diff_ms=0.0, highlight_ms=0.0, total_ms=0.0, timestamp_ns=0,
        )
        with pytest.raises(AttributeError):
            profile.total_ms = 1.0  # type: ignore[misc]
