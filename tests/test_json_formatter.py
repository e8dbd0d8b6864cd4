"""Tests for the JSON formatter."""

import json

from envprint.formatters import JsonFormatter
from envprint.models import CompositeFingerprint, ProbeOutcome, ProbeState


def make_composite(**kwargs) -> CompositeFingerprint:
    values = {
        "components": {"timezone": {"name": "UTC"}, "cpu": None},
        "hash": "abc123",
        "timestamp_ms": 1_700_000_000_000,
        "version": "2.0.0",
    }
    values.update(kwargs)
    return CompositeFingerprint(**values)


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_public_shape(self) -> None:
        """Test the field names of the public result."""
        parsed = json.loads(JsonFormatter().format(make_composite()))
        assert parsed["fingerprint"] == {"timezone": {"name": "UTC"}, "cpu": None}
        assert parsed["fingerprintHash"] == "abc123"
        assert parsed["timestamp"] == 1_700_000_000_000
        assert parsed["collectedAt"].startswith("2023-11-14T22:13:20")
        assert parsed["version"] == "2.0.0"
        assert parsed["cached"] is False
        assert "cacheKey" not in parsed

    def test_cache_key_included(self) -> None:
        parsed = json.loads(JsonFormatter().format(make_composite(cached=True, cache_key="k1")))
        assert parsed["cached"] is True
        assert parsed["cacheKey"] == "k1"

    def test_pretty_and_compact(self) -> None:
        composite = make_composite()
        pretty = JsonFormatter(pretty_print=True).format(composite)
        compact = JsonFormatter(pretty_print=False).format(composite)
        assert "\n" in pretty
        assert "\n" not in compact
        assert json.loads(pretty) == json.loads(compact)

    def test_outcomes(self) -> None:
        outcomes = {
            "cpu": ProbeOutcome(name="cpu", state=ProbeState.TIMED_OUT, elapsed_ms=50.0),
        }
        parsed = json.loads(JsonFormatter().format(make_composite(), outcomes))
        assert parsed["probes"]["cpu"]["state"] == "timed_out"
        assert "name" not in parsed["probes"]["cpu"]

    def test_non_json_values(self) -> None:
        """Test that probe values outside JSON types are still rendered."""
        composite = make_composite(components={"tags": {"b", "a"}, "raw": b"\x00\x01"})
        parsed = json.loads(JsonFormatter().format(composite))
        assert parsed["fingerprint"] == {"tags": ["a", "b"], "raw": "0001"}
