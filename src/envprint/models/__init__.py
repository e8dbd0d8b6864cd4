"""Data models for envprint."""

from envprint.models.base import (
    CacheStats,
    CompositeFingerprint,
    ProbeDescriptor,
    ProbeOutcome,
    ProbeState,
    now_ms,
)

__all__ = [
    "CacheStats",
    "CompositeFingerprint",
    "ProbeDescriptor",
    "ProbeOutcome",
    "ProbeState",
    "now_ms",
]
