"""Command-line interface for envprint.

This module provides:
- Typer-based CLI application
- Config file loading with ``--set path=value`` overrides
- Logging setup from the "logging.level" setting
- Opt-in Sentry error tracking

Usage:
    envprint collect                 # Collect and print the composite as JSON
    envprint collect --compact       # Single-line JSON
    envprint collect --profile       # Also print per-probe timings to stderr
    envprint probes                  # List built-in probes and their state
    envprint cache                   # Show result cache statistics
    envprint cache --clear           # Clear the durable cache tier

Examples:
    # Skip network probes and use the fast hash
    envprint collect --set features.network=false --set hashing.algorithm=simple

    # Persist composites between runs
    envprint collect --set cache.storage=file

    # Use a custom configuration file
    envprint collect --config ~/.config/envprint/custom.yaml
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
import typer

from envprint import __version__
from envprint.cache import ResultCache
from envprint.collectors import CollectionFailure, CollectionOrchestrator
from envprint.config import (
    ConfigError,
    ConfigStore,
    assignments_to_overrides,
    deep_merge,
    load_overrides,
)
from envprint.formatters import JsonFormatter
from envprint.probes import ProbeRegistry, builtin_probes, describe
from envprint.sentry import init_sentry

logger = logging.getLogger(__name__)

# Create the main Typer app
app = typer.Typer(
    name="envprint",
    help="Collect a hashed fingerprint of the host environment",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

# Diagnostics go to stderr so stdout stays machine-readable
console = Console(stderr=True)
output_console = Console()


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        output_console.print(f"envprint version {__version__}")
        raise typer.Exit()


def configure_logging(level: str, verbose: bool = False) -> None:
    """Route log records through rich at the configured level."""
    resolved = logging.DEBUG if verbose else getattr(logging, str(level).upper(), logging.WARNING)
    logging.basicConfig(
        level=resolved,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def build_config(
    config_path: Path | None,
    assignments: list[str] | None = None,
    extra: dict[str, Any] | None = None,
) -> ConfigStore:
    """Build the config store from the file, ``--set`` values and flags.

    Precedence, lowest first: defaults, config file, ``--set`` values, flags.

    Raises:
        typer.Exit: If the file is missing or invalid
    """
    try:
        overrides = load_overrides(str(config_path) if config_path else None)
        overrides = deep_merge(overrides, assignments_to_overrides(assignments or []))
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from e
    if extra:
        overrides = deep_merge(overrides, extra)
    return ConfigStore(overrides)


def build_registry(config: ConfigStore) -> ProbeRegistry:
    """Create a registry holding a fresh set of built-in probes."""
    registry = ProbeRegistry(config)
    registry.register_all(builtin_probes())
    return registry


async def run_collection(
    config: ConfigStore,
    formatter: JsonFormatter,
    include_outcomes: bool = False,
    profile: bool = False,
) -> str:
    """Run one collection and return the formatted output.

    With ``profile`` set, per-probe timings are printed to stderr.
    """
    async with CollectionOrchestrator(build_registry(config)) as orchestrator:
        composite = await orchestrator.collect()
        outcomes = orchestrator.last_outcomes if include_outcomes else None
        if profile:
            console.print(profile_table(orchestrator.profiler.get_summary()))
        return formatter.format(composite, outcomes)


def profile_table(summary: dict[str, Any]) -> Table:
    """Render a profiler summary as a table."""
    table = Table(title="Probe timings")
    table.add_column("Probe", style="cyan")
    table.add_column("Runs", justify="right")
    table.add_column("Avg ms", justify="right")
    table.add_column("Max ms", justify="right")
    table.add_column("States")

    for name, stats in sorted(summary["probes"].items()):
        states = ", ".join(f"{state}={count}" for state, count in sorted(stats["states"].items()))
        table.add_row(
            name,
            str(stats["count"]),
            f"{stats['avg_ms']:.1f}",
            f"{stats['max_ms']:.1f}",
            states,
        )
    return table


# Common options
ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to custom config file",
        envvar="ENVPRINT_CONFIG_PATH",
        exists=False,  # We handle existence check ourselves
    ),
]

SetOption = Annotated[
    list[str] | None,
    typer.Option(
        "--set",
        "-s",
        help="Override a config value, e.g. cache.ttl=60000 (repeatable)",
    ),
]

VerboseOption = Annotated[
    bool,
    typer.Option(
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
]


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """envprint - environment fingerprinting.

    Runs a set of probes against the host, combines their results into one
    composite and hashes it.
    """


@app.command("collect")
def collect_command(
    config: ConfigOption = None,
    set_values: SetOption = None,
    compact: Annotated[bool, typer.Option("--compact", help="Print single-line JSON")] = False,
    no_cache: Annotated[bool, typer.Option("--no-cache", help="Bypass the result cache")] = False,
    outcomes: Annotated[
        bool, typer.Option("--outcomes", help="Include per-probe outcomes in the output")
    ] = False,
    profile: Annotated[
        bool, typer.Option("--profile", help="Print per-probe timings to stderr")
    ] = False,
    sentry: Annotated[
        bool, typer.Option("--sentry", help="Report errors to Sentry (ENVPRINT_SENTRY_DSN)")
    ] = False,
    verbose: VerboseOption = False,
) -> None:
    """Collect a composite fingerprint and print it as JSON."""
    extra = {"cache": {"enabled": False}} if no_cache else None
    store = build_config(config, set_values, extra)
    configure_logging(store.get("logging.level", "WARNING"), verbose)

    if sentry and not init_sentry():
        console.print("[yellow]Warning: --sentry given but ENVPRINT_SENTRY_DSN is not set[/yellow]")

    formatter = JsonFormatter(pretty_print=not compact)
    try:
        output = asyncio.run(
            run_collection(store, formatter, include_outcomes=outcomes, profile=profile)
        )
    except CollectionFailure as e:
        console.print(f"[red]Error collecting fingerprint:[/red] {e}")
        raise typer.Exit(1) from e

    print(output)


@app.command("probes")
def probes_command(config: ConfigOption = None, set_values: SetOption = None) -> None:
    """List the built-in probes with their priority and enablement."""
    store = build_config(config, set_values)
    registry = build_registry(store)

    table = Table(title="Probes")
    table.add_column("Name", style="cyan")
    table.add_column("Priority", justify="right")
    table.add_column("Feature")
    table.add_column("Async")
    table.add_column("Timeout")
    table.add_column("Enabled")

    for probe in registry.get_all():
        descriptor = describe(probe)
        if descriptor.timeout_ms is not None:
            timeout = f"{descriptor.timeout_ms}ms"
        elif descriptor.timeout_group:
            group = descriptor.timeout_group
            budget = store.get(f"timeouts.{group}", store.get("timeouts.default"))
            timeout = f"{group} ({budget}ms)"
        else:
            timeout = "-"
        enabled = registry.is_enabled(probe)
        table.add_row(
            descriptor.name,
            str(descriptor.priority),
            descriptor.feature_key,
            "yes" if descriptor.requires_async else "no",
            timeout,
            "[green]yes[/green]" if enabled else "[red]no[/red]",
        )

    output_console.print(table)


@app.command("cache")
def cache_command(
    config: ConfigOption = None,
    set_values: SetOption = None,
    clear: Annotated[bool, typer.Option("--clear", help="Remove every cached entry")] = False,
) -> None:
    """Show result cache settings, or clear the durable tier."""
    store = build_config(config, set_values)
    configure_logging(store.get("logging.level", "WARNING"))
    cache = ResultCache(store)

    if clear:
        cache.clear()
        console.print("[green]Cache cleared[/green]")
        return

    stats = cache.get_stats_snapshot()
    table = Table(title="Result cache", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("enabled", str(stats.enabled))
    table.add_row("storage", stats.storage)
    table.add_row("ttl", f"{stats.ttl_ms}ms")
    table.add_row("max size", str(stats.max_size))
    if stats.storage != "memory":
        table.add_row("directory", str(store.get("cache.directory")))
    output_console.print(table)


def cli_main() -> None:
    """Entry point for the CLI application."""
    app()
