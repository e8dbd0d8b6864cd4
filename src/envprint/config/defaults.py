"""Default configuration values for envprint.

This module defines the default configuration tree used by ConfigStore before
any overrides are applied. All recognized option groups are documented here
for reference.

Environment Variables:
    ENVPRINT_CONFIG_PATH: Override default config file path
    Any config value can reference environment variables using ${VAR} syntax

Config File Locations (in order of precedence):
    1. Path specified via --config CLI flag
    2. Path specified via ENVPRINT_CONFIG_PATH environment variable
    3. ~/.config/envprint/config.yaml (XDG default)
    4. ~/.envprint/config.yaml (legacy location)
"""

from typing import Any

# Default configuration dictionary
DEFAULT_CONFIG: dict[str, Any] = {
    # Per-group timeout budgets in milliseconds
    "timeouts": {
        "default": 5000,
        "network": 2000,
        "hardware": 3000,
        "filesystem": 2000,
    },
    # Feature flags: "features.<key>: false" disables every probe with that key.
    # Missing keys count as enabled.
    "features": {},
    # Composite result cache
    "cache": {
        "enabled": True,
        "ttl": 3_600_000,  # 1 hour, in milliseconds
        "maxSize": 100,  # Memory-tier entry limit
        "storage": "memory",  # "memory" or "file"
        "directory": "~/.cache/envprint",  # Used by the "file" storage mode
        "stablePriorityMax": 10,  # Only probes at or below this priority feed the key
        "stableProbeLimit": 5,  # At most this many stable probes
    },
    # Composite hash policy: "sha256" or "simple"
    "hashing": {
        "algorithm": "sha256",
    },
    # Scheduling hints for long-running synchronous probes
    "performance": {
        "maxWorkers": 4,  # Threads available to synchronous probes
        "offloadSync": True,  # Run synchronous probes off the event loop
    },
    # Logging configuration (CLI only)
    "logging": {
        "level": "WARNING",  # DEBUG, INFO, WARNING, ERROR
    },
}
