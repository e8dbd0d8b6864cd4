"""Probe contract for envprint.

A probe is an independent unit that produces one named signal. Any object
with the attributes and methods of the ``Probe`` protocol can be registered;
no base class is required. ``FunctionProbe`` builds a probe from plain
callables, which covers most cases.

Example:
    def read_timezone() -> dict[str, Any]:
        return {"name": time.tzname[0], "offset": time.timezone}

    tz = FunctionProbe(
        name="timezone",
        priority=1,
        feature_key="timezone",
        execute_fn=read_timezone,
        stable_fn=lambda result: result["name"],
    )

    async def read_peers() -> list[str]:
        ...

    peers = FunctionProbe(
        name="peers",
        priority=40,
        feature_key="network",
        requires_async=True,
        timeout_group="network",
        execute_fn=read_peers,
    )
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from envprint.models.base import ProbeDescriptor


@runtime_checkable
class Probe(Protocol):
    """Structural interface every probe satisfies.

    Attributes:
        name: Unique name within a registry
        priority: Lower values run and rank earlier
        feature_key: Flag under "features." that controls enablement
        requires_async: True if execute() returns an awaitable
        timeout_ms: Timeout override in milliseconds, or None
        enabled: Mutable toggle, independent of the feature flag
    """

    name: str
    priority: int
    feature_key: str
    requires_async: bool
    timeout_ms: int | None
    enabled: bool

    def execute(self) -> Any:
        """Produce the probe's value, or an awaitable of it for async probes."""
        ...

    def get_stable_components(self, result: Any) -> Any:
        """Reduce a result for cache-key derivation; None to stay out of the key."""
        ...

    def cleanup(self) -> Any:
        """Release anything acquired by execute(); may return an awaitable."""
        ...


def describe(probe: Probe) -> ProbeDescriptor:
    """Build a read-only descriptor for any probe.

    Args:
        probe: A probe conforming to the Probe protocol

    Returns:
        ProbeDescriptor snapshot of the probe's current state
    """
    return ProbeDescriptor(
        name=probe.name,
        priority=probe.priority,
        feature_key=probe.feature_key,
        requires_async=probe.requires_async,
        timeout_ms=probe.timeout_ms,
        timeout_group=getattr(probe, "timeout_group", None),
        enabled=probe.enabled,
    )


@dataclass(eq=False)
class FunctionProbe:
    """A probe assembled from callables.

    Attributes:
        name: Unique probe name
        execute_fn: Produces the value; a coroutine function for async probes
        priority: Lower values run and rank earlier
        feature_key: Feature flag key (defaults to ``name``)
        requires_async: True if execute_fn returns an awaitable
        timeout_ms: Timeout override in milliseconds
        timeout_group: Name of a "timeouts.<group>" budget used when
            timeout_ms is not set
        stable_fn: Reduces a result for cache keys; probes without one
            never influence the key
        cleanup_fn: Releases resources; called after every execution
        enabled: Probe toggle
    """

    name: str
    execute_fn: Callable[[], Any] | Callable[[], Awaitable[Any]]
    priority: int = 100
    feature_key: str = ""
    requires_async: bool = False
    timeout_ms: int | None = None
    timeout_group: str | None = None
    stable_fn: Callable[[Any], Any] | None = None
    cleanup_fn: Callable[[], Any] | None = None
    enabled: bool = field(default=True)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Probe name must not be empty")
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive if specified")
        if not self.feature_key:
            self.feature_key = self.name

    def execute(self) -> Any:
        return self.execute_fn()

    def get_stable_components(self, result: Any) -> Any:
        if self.stable_fn is None or result is None:
            return None
        return self.stable_fn(result)

    def cleanup(self) -> Any:
        if self.cleanup_fn is not None:
            return self.cleanup_fn()
        return None

    def __repr__(self) -> str:
        return (
            f"FunctionProbe(name={self.name!r}, priority={self.priority}, "
            f"requires_async={self.requires_async}, enabled={self.enabled})"
        )
