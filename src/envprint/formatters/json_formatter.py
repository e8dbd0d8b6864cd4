"""JSON output for composite fingerprints.

This module renders a CompositeFingerprint in the public result shape:

- fingerprint: component values keyed by public field name
- fingerprintHash: digest of the canonical component serialization
- timestamp: collection time in epoch milliseconds
- version: envprint version that produced the composite
- cached: whether the composite came from the result cache

Probe outcomes can be attached for diagnostics.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
import json
from typing import Any

from envprint.hashing import to_jsonable
from envprint.models.base import CompositeFingerprint, ProbeOutcome


class JsonFormatter:
    """Converts composites to JSON text.

    Attributes:
        pretty_print: Whether to format with indentation (default: True)
    """

    name: str = "json"
    file_extension: str = ".json"

    def __init__(self, pretty_print: bool = True) -> None:
        """Initialize the JSON formatter.

        Args:
            pretty_print: If True, output indented JSON (default: True).
                         If False, output compact single-line JSON.
        """
        self.pretty_print = pretty_print

    def to_dict(
        self,
        composite: CompositeFingerprint,
        outcomes: Mapping[str, ProbeOutcome] | None = None,
    ) -> dict[str, Any]:
        """Build the public result mapping.

        Args:
            composite: Result of a collection
            outcomes: Optional per-probe outcomes to include

        Returns:
            JSON-ready dictionary
        """
        output: dict[str, Any] = {
            "fingerprint": to_jsonable(composite.components),
            "fingerprintHash": composite.hash,
            "timestamp": composite.timestamp_ms,
            "collectedAt": datetime.fromtimestamp(composite.timestamp_ms / 1000, UTC).isoformat(),
            "version": composite.version,
            "cached": composite.cached,
        }
        if composite.cache_key is not None:
            output["cacheKey"] = composite.cache_key
        if outcomes:
            output["probes"] = {
                name: outcome.model_dump(mode="json", exclude={"name"})
                for name, outcome in outcomes.items()
            }
        return output

    def format(
        self,
        composite: CompositeFingerprint,
        outcomes: Mapping[str, ProbeOutcome] | None = None,
    ) -> str:
        """Format a composite as a JSON string.

        Example:
            >>> formatter = JsonFormatter(pretty_print=False)
            >>> formatter.format(composite)
            '{"fingerprint":{"timezone":{...}},"fingerprintHash":"9f86...",...}'
        """
        output = self.to_dict(composite, outcomes)
        if self.pretty_print:
            return json.dumps(output, indent=2, ensure_ascii=False)
        return json.dumps(output, ensure_ascii=False, separators=(",", ":"))
