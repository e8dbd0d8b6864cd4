"""Probe contract, registry and built-in probes for envprint."""

from envprint.probes.base import FunctionProbe, Probe, describe
from envprint.probes.builtin import BUILTIN_FIELD_NAMES, OutboundAddressProbe, builtin_probes
from envprint.probes.registry import (
    ProbeConflictError,
    ProbeError,
    ProbeNotFoundError,
    ProbeRegistry,
)

__all__ = [
    "BUILTIN_FIELD_NAMES",
    "FunctionProbe",
    "OutboundAddressProbe",
    "Probe",
    "ProbeConflictError",
    "ProbeError",
    "ProbeNotFoundError",
    "ProbeRegistry",
    "builtin_probes",
    "describe",
]
