"""Errors raised during a collection cycle.

ProbeFailure, ProbeTimeout and ProbeDisabled describe why a single probe has
no result. The orchestrator records them as a None component and a
ProbeOutcome; they never escape collect(). CollectionFailure is the one error
collect() raises, when the aggregate cannot be serialized or hashed.
"""

from envprint.probes.registry import ProbeError


class ProbeFailure(ProbeError):
    """A probe's execute() raised."""


class ProbeTimeout(ProbeError):
    """A probe did not settle within its budget.

    Attributes:
        timeout_ms: The budget that expired
    """

    def __init__(self, probe_name: str, timeout_ms: float) -> None:
        super().__init__(f"Timed out after {timeout_ms:g}ms", probe_name=probe_name)
        self.timeout_ms = timeout_ms


class ProbeDisabled(ProbeError):
    """A selected probe was disabled before it started."""


class CollectionFailure(Exception):
    """Aggregation or hashing of the collected components failed.

    Attributes:
        cause: The underlying exception
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{super().__str__()} (caused by: {type(self.cause).__name__}: {self.cause})"
        return super().__str__()
