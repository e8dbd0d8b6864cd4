"""Tests for per-probe timing statistics."""

import logging

import pytest

from envprint.models import ProbeOutcome, ProbeState
from envprint.performance import ProbeProfiler, TimingStats


def outcome(
    name: str, elapsed_ms: float, state: ProbeState = ProbeState.COMPLETED
) -> ProbeOutcome:
    return ProbeOutcome(name=name, state=state, elapsed_ms=elapsed_ms)


class TestTimingStats:
    """Tests for TimingStats."""

    def test_empty(self) -> None:
        stats = TimingStats(name="tz")
        assert stats.count == 0
        assert stats.avg_ms == 0.0
        assert stats.max_ms == 0.0
        assert stats.last_ms == 0.0

    def test_aggregates(self) -> None:
        stats = TimingStats(name="tz")
        for value in (10.0, 20.0, 30.0):
            stats.add(value)
        assert stats.count == 3
        assert stats.avg_ms == 20.0
        assert stats.max_ms == 30.0
        assert stats.last_ms == 30.0
        assert stats.states["completed"] == 3

    def test_max_samples(self) -> None:
        """Test that only the most recent samples are kept."""
        stats = TimingStats(name="tz", max_samples=3)
        for value in range(10):
            stats.add(float(value))
        assert stats.times_ms == [7.0, 8.0, 9.0]

    def test_to_dict(self) -> None:
        stats = TimingStats(name="tz")
        stats.add(1.23456, ProbeState.TIMED_OUT)
        summary = stats.to_dict()
        assert summary["name"] == "tz"
        assert summary["avg_ms"] == 1.235
        assert summary["states"] == {"timed_out": 1}


class TestProbeProfiler:
    """Tests for ProbeProfiler."""

    def test_record(self) -> None:
        profiler = ProbeProfiler()
        profiler.record(outcome("tz", 5.0))
        profiler.record(outcome("tz", 7.0, ProbeState.FAILED))
        stats = profiler.get_stats("tz")
        assert stats is not None
        assert stats.count == 2
        assert stats.states == {"completed": 1, "failed": 1}

    def test_disabled_outcomes_skipped(self) -> None:
        profiler = ProbeProfiler()
        profiler.record(outcome("tz", 0.0, ProbeState.DISABLED))
        assert profiler.get_stats("tz") is None

    def test_disabled_profiler_records_nothing(self) -> None:
        profiler = ProbeProfiler(enabled=False)
        profiler.record(outcome("tz", 5.0))
        assert profiler.get_summary() == {"enabled": False, "probes": {}}
        profiler.enable()
        profiler.record(outcome("tz", 5.0))
        assert profiler.get_stats("tz") is not None

    def test_slow_probe_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        profiler = ProbeProfiler(slow_threshold_ms=10.0)
        with caplog.at_level(logging.WARNING, logger="envprint.performance.profiler"):
            profiler.record(outcome("disks", 50.0))
        assert "Slow probe detected: disks" in caplog.text

    def test_clear(self) -> None:
        profiler = ProbeProfiler()
        profiler.record(outcome("tz", 5.0))
        profiler.clear()
        assert profiler.get_summary()["probes"] == {}
