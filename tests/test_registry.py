"""Tests for the envprint probe registry."""

from typing import Any

import pytest

from envprint.config import ConfigStore
from envprint.models import ProbeDescriptor
from envprint.probes import (
    FunctionProbe,
    Probe,
    ProbeConflictError,
    ProbeError,
    ProbeNotFoundError,
    ProbeRegistry,
    describe,
)


def make_probe(name: str, priority: int = 10, **kwargs: Any) -> FunctionProbe:
    return FunctionProbe(name=name, priority=priority, execute_fn=lambda: name, **kwargs)


class BareProbe:
    """Probe implemented without any envprint base class."""

    name = "bare"
    priority = 7
    feature_key = "bare"
    requires_async = False
    timeout_ms = None

    def __init__(self) -> None:
        self.enabled = True

    def execute(self) -> str:
        return "bare"

    def get_stable_components(self, result: Any) -> Any:
        return result

    def cleanup(self) -> None:
        pass


class TestFunctionProbe:
    """Tests for FunctionProbe construction."""

    def test_feature_key_defaults_to_name(self) -> None:
        """Test that an empty feature key falls back to the name."""
        assert make_probe("tz").feature_key == "tz"
        assert make_probe("tz", feature_key="timezone").feature_key == "timezone"

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError, match="name"):
            make_probe("")

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ValueError, match="timeout_ms"):
            make_probe("tz", timeout_ms=0)

    def test_stable_components(self) -> None:
        """Test that probes without a stable_fn stay out of the key."""
        plain = make_probe("plain")
        reduced = make_probe("reduced", stable_fn=lambda r: r.upper())
        assert plain.get_stable_components("x") is None
        assert reduced.get_stable_components("x") == "X"
        assert reduced.get_stable_components(None) is None

    def test_satisfies_protocol(self) -> None:
        assert isinstance(make_probe("tz"), Probe)
        assert isinstance(BareProbe(), Probe)


class TestRegistration:
    """Tests for registering and removing probes."""

    def test_register_and_get(self) -> None:
        registry = ProbeRegistry()
        probe = make_probe("tz")
        registry.register(probe)
        assert registry.get("tz") is probe
        assert "tz" in registry
        assert len(registry) == 1

    def test_iterates_names(self) -> None:
        registry = ProbeRegistry()
        registry.register_all([make_probe("a"), make_probe("b")])
        assert list(registry) == ["a", "b"]

    def test_get_unknown_returns_none(self) -> None:
        assert ProbeRegistry().get("nope") is None

    def test_register_bare_probe(self) -> None:
        """Test that any protocol-conforming object can be registered."""
        registry = ProbeRegistry()
        registry.register(BareProbe())
        assert [p.name for p in registry.get_enabled_sorted()] == ["bare"]

    def test_duplicate_replaces_by_default(self) -> None:
        """Test that the last registration wins."""
        registry = ProbeRegistry()
        first = make_probe("tz")
        second = make_probe("tz")
        registry.register(first)
        registry.register(second)
        assert registry.get("tz") is second
        assert len(registry) == 1

    def test_replacement_orders_as_new_registration(self) -> None:
        """Test that a replaced probe moves behind equal-priority peers."""
        registry = ProbeRegistry()
        registry.register_all([make_probe("a", 1), make_probe("b", 1)])
        registry.register(make_probe("a", 1))
        assert [p.name for p in registry.get_enabled_sorted()] == ["b", "a"]

    def test_duplicate_rejected_by_policy(self) -> None:
        """Test the reject duplicate policy."""
        registry = ProbeRegistry(on_duplicate="reject")
        registry.register(make_probe("tz"))
        with pytest.raises(ProbeConflictError) as exc_info:
            registry.register(make_probe("tz"))
        assert exc_info.value.probe_name == "tz"
        assert isinstance(exc_info.value, ProbeError)

    def test_unknown_policy(self) -> None:
        with pytest.raises(ValueError):
            ProbeRegistry(on_duplicate="ignore")  # type: ignore[arg-type]

    def test_unregister(self) -> None:
        registry = ProbeRegistry()
        registry.register(make_probe("tz"))
        registry.unregister("tz")
        assert "tz" not in registry

    def test_unregister_unknown(self) -> None:
        with pytest.raises(ProbeNotFoundError, match="nope"):
            ProbeRegistry().unregister("nope")

    def test_clear(self) -> None:
        registry = ProbeRegistry()
        registry.register_all([make_probe("a"), make_probe("b")])
        registry.clear()
        assert len(registry) == 0
        assert registry.get_all() == []


class TestOrdering:
    """Tests for priority ordering."""

    def test_sorted_by_priority(self) -> None:
        registry = ProbeRegistry()
        registry.register_all([make_probe("c", 30), make_probe("a", 10), make_probe("b", 20)])
        assert [p.name for p in registry.get_enabled_sorted()] == ["a", "b", "c"]

    def test_ties_keep_registration_order(self) -> None:
        """Test that equal priorities keep registration order."""
        registry = ProbeRegistry()
        registry.register_all([make_probe("z", 5), make_probe("y", 5), make_probe("x", 5)])
        assert [p.name for p in registry.get_enabled_sorted()] == ["z", "y", "x"]

    def test_get_all_in_registration_order(self) -> None:
        registry = ProbeRegistry()
        registry.register_all([make_probe("c", 30), make_probe("a", 10)])
        assert [p.name for p in registry.get_all()] == ["c", "a"]


class TestEnablement:
    """Tests for probe toggles and feature flags."""

    def test_disable_and_enable(self) -> None:
        registry = ProbeRegistry()
        registry.register_all([make_probe("a"), make_probe("b")])
        registry.disable("a")
        assert [p.name for p in registry.get_enabled_sorted()] == ["b"]
        registry.enable("a")
        assert [p.name for p in registry.get_enabled_sorted()] == ["a", "b"]

    def test_toggle_unknown_is_ignored(self) -> None:
        registry = ProbeRegistry()
        registry.disable("nope")
        registry.enable("nope")
        assert len(registry) == 0

    def test_feature_flag_disables(self) -> None:
        """Test that features.<key>: false disables every probe with that key."""
        config = ConfigStore({"features": {"network": False}})
        registry = ProbeRegistry(config)
        registry.register_all(
            [
                make_probe("net_if", feature_key="network"),
                make_probe("outbound", feature_key="network"),
                make_probe("tz"),
            ]
        )
        assert [p.name for p in registry.get_enabled_sorted()] == ["tz"]

    def test_missing_feature_flag_means_enabled(self) -> None:
        registry = ProbeRegistry(ConfigStore())
        probe = make_probe("tz", feature_key="timezone")
        assert registry.is_enabled(probe)

    def test_flag_read_live(self) -> None:
        """Test that config updates take effect without re-registering."""
        config = ConfigStore()
        registry = ProbeRegistry(config)
        registry.register(make_probe("tz"))
        config.update("features.tz", False)
        assert registry.get_enabled_sorted() == []

    def test_toggle_and_flag_both_required(self) -> None:
        config = ConfigStore({"features": {"tz": True}})
        registry = ProbeRegistry(config)
        registry.register(make_probe("tz"))
        registry.disable("tz")
        assert registry.get_enabled_sorted() == []


class TestDescribe:
    """Tests for descriptor snapshots."""

    def test_describe_probe(self) -> None:
        probe = make_probe("net", 40, requires_async=True, timeout_group="network")
        descriptor = describe(probe)
        assert isinstance(descriptor, ProbeDescriptor)
        assert descriptor.name == "net"
        assert descriptor.priority == 40
        assert descriptor.requires_async is True
        assert descriptor.timeout_group == "network"
        assert descriptor.timeout_ms is None

    def test_describe_bare_probe_without_group(self) -> None:
        assert describe(BareProbe()).timeout_group is None

    def test_registry_describe(self) -> None:
        registry = ProbeRegistry()
        registry.register_all([make_probe("b", 2), make_probe("a", 1)])
        registry.disable("b")
        descriptors = registry.describe()
        assert [d.name for d in descriptors] == ["b", "a"]
        assert descriptors[0].enabled is False
