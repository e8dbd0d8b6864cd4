"""Tests for the envprint CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from envprint import __version__
from envprint.cache import CacheEntry, FileCacheTier
from envprint.cli import app, build_config, profile_table
from envprint.probes import FunctionProbe

runner = CliRunner()


def fake_probes() -> list[FunctionProbe]:
    return [
        FunctionProbe(name="tz", priority=1, execute_fn=lambda: "UTC", stable_fn=lambda r: r),
        FunctionProbe(name="cpu", priority=4, feature_key="hardware", execute_fn=lambda: 8),
        FunctionProbe(
            name="net_if",
            priority=40,
            feature_key="network",
            timeout_group="network",
            execute_fn=lambda: ["eth0"],
        ),
    ]


@pytest.fixture(autouse=True)
def isolated(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Use fake probes and keep user config files out of the way."""
    monkeypatch.setattr("envprint.cli.builtin_probes", fake_probes)
    monkeypatch.delenv("ENVPRINT_CONFIG_PATH", raising=False)
    monkeypatch.delenv("ENVPRINT_SENTRY_DSN", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))


class TestVersion:
    """Tests for --version."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestCollectCommand:
    """Tests for `envprint collect`."""

    def test_collect_prints_json(self) -> None:
        """Test that collect prints the composite with public field names."""
        result = runner.invoke(app, ["collect", "--no-cache"])
        assert result.exit_code == 0
        parsed = json.loads(result.stdout)
        assert parsed["fingerprint"] == {
            "timezone": "UTC",
            "cpu": 8,
            "network_interfaces": ["eth0"],
        }
        assert len(parsed["fingerprintHash"]) == 64
        assert parsed["version"] == __version__
        assert parsed["cached"] is False

    def test_compact_output(self) -> None:
        result = runner.invoke(app, ["collect", "--compact", "--no-cache"])
        assert result.exit_code == 0
        assert result.stdout.strip().count("\n") == 0

    def test_set_overrides(self) -> None:
        """Test that --set values reach the config store."""
        result = runner.invoke(
            app,
            ["collect", "--set", "features.network=false", "--set", "hashing.algorithm=simple"],
        )
        assert result.exit_code == 0
        parsed = json.loads(result.stdout)
        assert "network_interfaces" not in parsed["fingerprint"]
        assert len(parsed["fingerprintHash"]) < 64

    def test_outcomes(self) -> None:
        result = runner.invoke(app, ["collect", "--no-cache", "--outcomes"])
        assert result.exit_code == 0
        parsed = json.loads(result.stdout)
        assert parsed["probes"]["cpu"]["state"] == "completed"

    def test_config_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "envprint.yaml"
        config_file.write_text("features:\n  hardware: false\n")
        result = runner.invoke(app, ["collect", "--config", str(config_file), "--no-cache"])
        assert result.exit_code == 0
        assert "cpu" not in json.loads(result.stdout)["fingerprint"]

    def test_missing_config_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["collect", "--config", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1

    def test_invalid_config_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("cache: [unclosed\n")
        result = runner.invoke(app, ["collect", "--config", str(config_file)])
        assert result.exit_code == 1

    def test_invalid_set_value(self) -> None:
        result = runner.invoke(app, ["collect", "--set", "no-equals-sign"])
        assert result.exit_code == 1

    def test_hashing_failure_exit_code(self) -> None:
        result = runner.invoke(app, ["collect", "--set", "hashing.algorithm=md5"])
        assert result.exit_code == 1

    def test_sentry_without_dsn_still_collects(self) -> None:
        result = runner.invoke(app, ["collect", "--no-cache", "--sentry"])
        assert result.exit_code == 0
        assert "fingerprintHash" in result.stdout

    def test_profile_prints_timings(self) -> None:
        """Test that --profile adds a per-probe timing table alongside the JSON."""
        result = runner.invoke(app, ["collect", "--no-cache", "--profile"])
        assert result.exit_code == 0
        assert "Probe timings" in result.output
        for name in ("tz", "cpu", "net_if"):
            assert name in result.output
        assert "completed=1" in result.output

    def test_profile_table_rows(self) -> None:
        summary = {
            "enabled": True,
            "probes": {
                "net_if": {"count": 2, "avg_ms": 1.25, "max_ms": 2.0, "states": {"timed_out": 2}},
                "cpu": {"count": 1, "avg_ms": 0.5, "max_ms": 0.5, "states": {"completed": 1}},
            },
        }
        table = profile_table(summary)
        assert table.row_count == 2
        assert [column.header for column in table.columns][0] == "Probe"


class TestProbesCommand:
    """Tests for `envprint probes`."""

    def test_lists_probes(self) -> None:
        result = runner.invoke(app, ["probes"])
        assert result.exit_code == 0
        for name in ("tz", "cpu", "net_if"):
            assert name in result.stdout
        assert "network" in result.stdout


class TestCacheCommand:
    """Tests for `envprint cache`."""

    def test_shows_stats(self) -> None:
        result = runner.invoke(app, ["cache", "--set", "cache.ttl=1234"])
        assert result.exit_code == 0
        assert "1234ms" in result.stdout

    def test_clear_file_tier(self, tmp_path: Path) -> None:
        """Test that --clear empties the durable tier."""
        directory = tmp_path / "cache"
        tier = FileCacheTier(directory)
        tier.put(CacheEntry(key="k1", payload={"hash": "x"}, inserted_at_ms=0))

        result = runner.invoke(
            app,
            [
                "cache",
                "--clear",
                "--set",
                "cache.storage=file",
                "--set",
                f"cache.directory={directory}",
            ],
        )
        assert result.exit_code == 0
        assert tier.get("k1") is None


class TestBuildConfig:
    """Tests for config assembly."""

    def test_precedence(self, tmp_path: Path) -> None:
        """Test defaults < file < --set < flags."""
        config_file = tmp_path / "envprint.yaml"
        config_file.write_text("cache:\n  ttl: 10\n  maxSize: 3\n")
        store = build_config(
            config_file, ["cache.ttl=20", "cache.enabled=true"], {"cache": {"enabled": False}}
        )
        assert store.get("cache.ttl") == 20
        assert store.get("cache.maxSize") == 3
        assert store.get("cache.enabled") is False
        assert store.get("timeouts.default") == 5000
