"""envprint - environment fingerprinting with concurrent, cached probe collection."""

__version__ = "2.0.0"

from envprint.cache import ResultCache
from envprint.collectors import CollectionFailure, CollectionOrchestrator, TimeoutGuard
from envprint.config import ConfigStore
from envprint.models import CompositeFingerprint
from envprint.probes import FunctionProbe, Probe, ProbeRegistry

__all__ = [
    "__version__",
    "CollectionFailure",
    "CollectionOrchestrator",
    "CompositeFingerprint",
    "ConfigStore",
    "FunctionProbe",
    "Probe",
    "ProbeRegistry",
    "ResultCache",
    "TimeoutGuard",
]
