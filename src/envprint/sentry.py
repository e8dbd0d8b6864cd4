"""Sentry SDK integration for envprint.

This module provides:
- Opt-in Sentry initialization with asyncio and logging integrations
- Context and tag helpers for collection runs
- Probe error capture and breadcrumbs

Every helper is safe to call when Sentry was never initialized: the SDK
turns them into no-ops, so the orchestrator can report unconditionally.

Usage:
    from envprint.sentry import init_sentry, add_breadcrumb

    init_sentry()  # reads ENVPRINT_SENTRY_DSN
    add_breadcrumb("Collection started", category="collect")
"""

from __future__ import annotations

import logging
import os
import platform
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from envprint import __version__

logger = logging.getLogger(__name__)

DSN_ENV_VAR = "ENVPRINT_SENTRY_DSN"


def init_sentry(
    *,
    dsn: str | None = None,
    traces_sample_rate: float = 0.0,
    debug: bool = False,
    event_level: int = logging.ERROR,
) -> bool:
    """Initialize the Sentry SDK.

    Args:
        dsn: Sentry DSN (falls back to the ENVPRINT_SENTRY_DSN variable)
        traces_sample_rate: Sample rate for performance traces (0.0-1.0)
        debug: Enable Sentry debug mode for troubleshooting
        event_level: Minimum log level that creates a Sentry event

    Returns:
        True if Sentry was initialized, False when no DSN is configured
    """
    dsn = dsn or os.environ.get(DSN_ENV_VAR)
    if not dsn:
        logger.debug("Sentry not initialized: no DSN configured")
        return False

    sentry_sdk.init(
        dsn=dsn,
        traces_sample_rate=traces_sample_rate,
        debug=debug,
        send_default_pii=False,
        release=f"envprint@{__version__}",
        environment=os.environ.get("ENVPRINT_ENV", "production"),
        integrations=[
            AsyncioIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=event_level),
        ],
    )

    sentry_sdk.set_tag("python.version", platform.python_version())
    sentry_sdk.set_tag("os.name", platform.system())
    sentry_sdk.set_tag("arch", platform.machine())
    return True


def set_collection_context(
    *,
    probes: list[str],
    cache_enabled: bool,
    storage: str,
) -> None:
    """Attach the current collection setup to subsequent events.

    Args:
        probes: Names of the probes selected for this run
        cache_enabled: Whether the result cache is on
        storage: Configured cache storage mode
    """
    sentry_sdk.set_context(
        "collection",
        {
            "probes": probes,
            "probe_count": len(probes),
            "cache_enabled": cache_enabled,
            "storage": storage,
        },
    )


def capture_probe_error(
    probe_name: str,
    error: BaseException,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Capture an error raised by a probe.

    Args:
        probe_name: Name of the probe that failed
        error: The exception that occurred
        extra: Additional context to include
    """
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("probe", probe_name)
        scope.set_context(
            "probe_error",
            {
                "probe": probe_name,
                "error_type": type(error).__name__,
                **(extra or {}),
            },
        )
        sentry_sdk.capture_exception(error)


def add_breadcrumb(
    message: str,
    category: str = "envprint",
    level: str = "info",
    data: dict[str, Any] | None = None,
) -> None:
    """Add a breadcrumb for debugging.

    Args:
        message: Description of the event
        category: Category for grouping (e.g., "probe", "cache", "config")
        level: Severity level (debug, info, warning, error)
        data: Additional data to attach
    """
    sentry_sdk.add_breadcrumb(message=message, category=category, level=level, data=data)
