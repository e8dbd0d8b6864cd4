"""Probe collection for envprint.

This module provides the machinery that turns registered probes into one
composite fingerprint:

- CollectionOrchestrator: concurrent, cached collection cycles
- TimeoutGuard: deadline racing with abandonment semantics
- Errors describing why a probe has no result
"""

from envprint.collectors.errors import CollectionFailure, ProbeDisabled, ProbeFailure, ProbeTimeout
from envprint.collectors.orchestrator import COMPONENT_FIELD_NAMES, CollectionOrchestrator
from envprint.collectors.timeout import GuardResult, TimeoutGuard

__all__ = [
    "COMPONENT_FIELD_NAMES",
    "CollectionFailure",
    "CollectionOrchestrator",
    "GuardResult",
    "ProbeDisabled",
    "ProbeFailure",
    "ProbeTimeout",
    "TimeoutGuard",
]
