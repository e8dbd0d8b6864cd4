"""Probe registry for envprint.

This module provides the central probe store:
- Registration by unique name with a configurable duplicate policy
- Priority ordering with ties broken by registration order
- Enablement combining each probe's toggle with "features.<key>" flags
- Lookup and descriptor snapshots for diagnostics
"""

from collections.abc import Iterable, Iterator
import itertools
import logging
from typing import Literal

from envprint.config.store import ConfigStore
from envprint.models.base import ProbeDescriptor
from envprint.probes.base import Probe, describe

logger = logging.getLogger(__name__)

DuplicatePolicy = Literal["replace", "reject"]


class ProbeError(Exception):
    """Base exception for probe-related errors.

    Attributes:
        probe_name: Name of the probe that caused the error (if known)
        cause: The underlying exception that caused this error (if any)
    """

    def __init__(
        self,
        message: str,
        probe_name: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.probe_name = probe_name
        self.cause = cause

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.probe_name:
            parts.insert(0, f"[{self.probe_name}]")
        if self.cause:
            parts.append(f"(caused by: {self.cause})")
        return " ".join(parts)


class ProbeNotFoundError(ProbeError):
    """Raised when a requested probe is not registered."""


class ProbeConflictError(ProbeError):
    """Raised when a probe name is registered twice under the reject policy."""


class ProbeRegistry:
    """Named, prioritized store of probes.

    A probe is enabled iff its own ``enabled`` toggle is true and
    ``config.get("features." + feature_key, True)`` is truthy.

    Registering a name that already exists replaces the earlier probe by
    default (last registration wins); the replacement is ordered as a new
    registration. Pass ``on_duplicate="reject"`` to raise instead.

    Example:
        registry = ProbeRegistry(config)
        registry.register_all([timezone_probe, platform_probe])
        registry.disable("platform")
        for probe in registry.get_enabled_sorted():
            ...
    """

    def __init__(
        self,
        config: ConfigStore | None = None,
        on_duplicate: DuplicatePolicy = "replace",
    ) -> None:
        """Initialize the registry.

        Args:
            config: Store used to resolve feature flags (defaults only if omitted)
            on_duplicate: "replace" (last registration wins) or "reject"
        """
        if on_duplicate not in ("replace", "reject"):
            raise ValueError(f"Unknown duplicate policy: {on_duplicate}")
        self._config = config if config is not None else ConfigStore()
        self._on_duplicate = on_duplicate
        self._probes: dict[str, Probe] = {}
        self._sequence: dict[str, int] = {}
        self._counter = itertools.count()

    @property
    def config(self) -> ConfigStore:
        """Return the config store used for feature flags."""
        return self._config

    def register(self, probe: Probe) -> None:
        """Register a probe.

        Args:
            probe: Probe to add

        Raises:
            ProbeConflictError: If the name exists and the policy is "reject"
        """
        name = probe.name
        if name in self._probes:
            if self._on_duplicate == "reject":
                raise ProbeConflictError("Probe is already registered", probe_name=name)
            logger.warning(f"Probe {name} re-registered; replacing previous instance")
            del self._probes[name]

        self._probes[name] = probe
        self._sequence[name] = next(self._counter)
        logger.debug(f"Registered probe: {name} (priority {probe.priority})")

    def register_all(self, probes: Iterable[Probe]) -> None:
        """Register several probes in order."""
        for probe in probes:
            self.register(probe)

    def unregister(self, name: str) -> None:
        """Remove a probe.

        Args:
            name: Probe name

        Raises:
            ProbeNotFoundError: If no probe with that name is registered
        """
        if name not in self._probes:
            raise ProbeNotFoundError("Probe is not registered", probe_name=name)
        del self._probes[name]
        del self._sequence[name]

    def get(self, name: str) -> Probe | None:
        """Return the probe registered under ``name``, or None."""
        return self._probes.get(name)

    def get_all(self) -> list[Probe]:
        """Return every registered probe in registration order."""
        return sorted(self._probes.values(), key=lambda p: self._sequence[p.name])

    def is_enabled(self, probe: Probe) -> bool:
        """Check the probe toggle and its feature flag."""
        if not probe.enabled:
            return False
        return bool(self._config.get(f"features.{probe.feature_key}", True))

    def get_enabled_sorted(self) -> list[Probe]:
        """Return enabled probes by ascending priority, ties by registration order."""
        enabled = [probe for probe in self._probes.values() if self.is_enabled(probe)]
        return sorted(enabled, key=lambda p: (p.priority, self._sequence[p.name]))

    def enable(self, name: str) -> None:
        """Turn a probe's toggle on; unknown names are ignored."""
        probe = self._probes.get(name)
        if probe is not None:
            probe.enabled = True

    def disable(self, name: str) -> None:
        """Turn a probe's toggle off; unknown names are ignored."""
        probe = self._probes.get(name)
        if probe is not None:
            probe.enabled = False

    def describe(self) -> list[ProbeDescriptor]:
        """Return descriptors for all probes in registration order."""
        return [describe(probe) for probe in self.get_all()]

    def clear(self) -> None:
        """Remove all probes."""
        self._probes.clear()
        self._sequence.clear()
        logger.debug("Registry cleared")

    def __len__(self) -> int:
        return len(self._probes)

    def __contains__(self, name: str) -> bool:
        return name in self._probes

    def __iter__(self) -> Iterator[str]:
        return iter(self._probes)

    def __repr__(self) -> str:
        return f"ProbeRegistry(probes={len(self._probes)}, on_duplicate={self._on_duplicate!r})"
