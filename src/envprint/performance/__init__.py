"""Performance utilities for envprint.

This module provides per-probe timing statistics used by the collection
orchestrator to surface slow probes.
"""

from envprint.performance.profiler import ProbeProfiler, TimingStats

__all__ = [
    "ProbeProfiler",
    "TimingStats",
]
