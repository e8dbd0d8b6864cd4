"""Pydantic models for envprint data types.

This module defines the records passed between envprint components and
returned to callers:
- CompositeFingerprint: the aggregated, hashed result of one collection
- ProbeDescriptor: read-only snapshot of a registered probe
- ProbeOutcome / ProbeState: terminal state of one probe in a collection
- CacheStats: diagnostic view of the result cache
"""

from enum import Enum
import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from envprint.hashing import to_jsonable


def now_ms() -> int:
    """Return the current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


class ProbeState(str, Enum):
    """Terminal states a probe can reach during one collection.

    Every probe moves Pending -> Running -> one of these -> CleanedUp.
    DISABLED probes skip Running entirely.
    """

    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    DISABLED = "disabled"


class ProbeDescriptor(BaseModel):
    """Snapshot of a probe's identity and enablement.

    Attributes:
        name: Unique probe name within a registry
        priority: Lower values run and rank earlier
        feature_key: Flag under "features." that controls enablement
        requires_async: Whether execute() returns an awaitable
        timeout_ms: Per-probe timeout override in milliseconds
        timeout_group: Name of a "timeouts.<group>" budget
        enabled: The probe's own toggle, independent of the feature flag
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    priority: int = 0
    feature_key: str = ""
    requires_async: bool = False
    timeout_ms: int | None = Field(default=None, gt=0)
    timeout_group: str | None = None
    enabled: bool = True


class ProbeOutcome(BaseModel):
    """How one probe finished during a collection.

    Attributes:
        name: Probe name
        state: Terminal state reached
        elapsed_ms: Time from start to settlement
        error: Error description for FAILED and TIMED_OUT probes
    """

    model_config = ConfigDict(frozen=True)

    name: str
    state: ProbeState
    elapsed_ms: float = 0.0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        """Return True if the probe produced a result."""
        return self.state is ProbeState.COMPLETED


class CompositeFingerprint(BaseModel):
    """The aggregated, hashed result of one collection cycle.

    Attributes:
        components: Probe results keyed by public field name (None for
            probes that failed, timed out or were skipped)
        hash: Digest of the canonically serialized components
        timestamp_ms: When the components were collected (epoch ms)
        cached: True when served from the result cache
        cache_key: Key the composite is cached under, if any
        version: envprint version that produced the composite
    """

    model_config = ConfigDict(frozen=True)

    components: dict[str, Any] = Field(default_factory=dict)
    hash: str
    timestamp_ms: int = Field(default_factory=now_ms)
    cached: bool = False
    cache_key: str | None = None
    version: str = ""

    def to_cache_payload(self) -> dict[str, Any]:
        """Return the cached fields, with components reduced to fresh JSON-native values."""
        return {
            "components": to_jsonable(self.components),
            "hash": self.hash,
            "timestamp": self.timestamp_ms,
            "version": self.version,
        }

    @classmethod
    def from_cache_payload(cls, payload: dict[str, Any], cache_key: str) -> "CompositeFingerprint":
        """Rebuild a composite from a cache payload.

        Args:
            payload: Mapping written by to_cache_payload()
            cache_key: Key the payload was found under

        Returns:
            A composite tagged as cached
        """
        return cls(
            components=payload.get("components", {}),
            hash=payload["hash"],
            timestamp_ms=payload.get("timestamp", now_ms()),
            cached=True,
            cache_key=cache_key,
            version=payload.get("version", ""),
        )


class CacheStats(BaseModel):
    """Read-only diagnostic view of a ResultCache.

    Attributes:
        enabled: The cache.enabled master switch
        memory_size: Entries currently held in memory
        durable_ready: Whether the durable tier is initialized and usable
        storage: Configured storage mode
        ttl_ms: Entry time-to-live in milliseconds
        max_size: Memory-tier entry limit
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool
    memory_size: int
    durable_ready: bool
    storage: str
    ttl_ms: int
    max_size: int
