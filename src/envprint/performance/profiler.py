"""Per-probe timing statistics.

ProbeProfiler records how long each probe took to settle and how often it
failed or timed out, so slow probes can be spotted and given a budget under
"timeouts.<group>".
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
import logging
from statistics import mean
from typing import Any

from envprint.models.base import ProbeOutcome, ProbeState

logger = logging.getLogger(__name__)


@dataclass
class TimingStats:
    """Statistics for a series of timing measurements.

    Attributes:
        name: Name of the measured probe
        times_ms: Most recent measurements in milliseconds
        max_samples: Maximum number of samples to keep
        states: How many times each terminal state was reached
    """

    name: str
    times_ms: list[float] = field(default_factory=list)
    max_samples: int = 100
    states: Counter[str] = field(default_factory=Counter)

    def add(self, time_ms: float, state: ProbeState = ProbeState.COMPLETED) -> None:
        """Add a timing measurement.

        Args:
            time_ms: Timing in milliseconds
            state: Terminal state the probe reached
        """
        self.times_ms.append(time_ms)
        if len(self.times_ms) > self.max_samples:
            self.times_ms = self.times_ms[-self.max_samples :]
        self.states[state.value] += 1

    @property
    def count(self) -> int:
        """Number of measurements kept."""
        return len(self.times_ms)

    @property
    def avg_ms(self) -> float:
        if not self.times_ms:
            return 0.0
        return mean(self.times_ms)

    @property
    def max_ms(self) -> float:
        if not self.times_ms:
            return 0.0
        return max(self.times_ms)

    @property
    def last_ms(self) -> float:
        if not self.times_ms:
            return 0.0
        return self.times_ms[-1]

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to a dictionary summary."""
        return {
            "name": self.name,
            "count": self.count,
            "avg_ms": round(self.avg_ms, 3),
            "max_ms": round(self.max_ms, 3),
            "last_ms": round(self.last_ms, 3),
            "states": dict(self.states),
        }


class ProbeProfiler:
    """Tracks settle times per probe.

    Disabled probes are not timed. A warning is logged for any probe that
    takes longer than ``slow_threshold_ms``.
    """

    def __init__(self, enabled: bool = True, slow_threshold_ms: float = 1000.0) -> None:
        self._stats: dict[str, TimingStats] = {}
        self._enabled = enabled
        self.slow_threshold_ms = slow_threshold_ms

    @property
    def enabled(self) -> bool:
        """Check if profiling is enabled."""
        return self._enabled

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def record(self, outcome: ProbeOutcome) -> None:
        """Record one probe outcome.

        Args:
            outcome: Terminal state and elapsed time of a probe
        """
        if not self._enabled or outcome.state is ProbeState.DISABLED:
            return

        stats = self._stats.get(outcome.name)
        if stats is None:
            stats = self._stats[outcome.name] = TimingStats(name=outcome.name)
        stats.add(outcome.elapsed_ms, outcome.state)

        if outcome.elapsed_ms > self.slow_threshold_ms:
            logger.warning(f"Slow probe detected: {outcome.name} took {outcome.elapsed_ms:.1f}ms")

    def get_stats(self, name: str) -> TimingStats | None:
        """Get stats for one probe, or None if it was never recorded."""
        return self._stats.get(name)

    def get_summary(self) -> dict[str, Any]:
        """Return a summary of all recorded probes."""
        return {
            "enabled": self._enabled,
            "probes": {name: stats.to_dict() for name, stats in self._stats.items()},
        }

    def clear(self) -> None:
        """Drop all recorded data."""
        self._stats.clear()
