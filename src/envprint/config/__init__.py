"""Configuration module for envprint.

This module provides:
- ConfigStore, the dot-addressable settings tree
- Default configuration values
- YAML config file discovery and loading
- Environment variable expansion
- Clear error messages for config issues
"""

from envprint.config.defaults import DEFAULT_CONFIG
from envprint.config.loader import (
    ConfigError,
    ConfigSyntaxError,
    ConfigValidationError,
    assignments_to_overrides,
    get_config_path,
    load_overrides,
)
from envprint.config.store import ConfigStore, deep_merge

__all__ = [
    "ConfigError",
    "ConfigStore",
    "ConfigSyntaxError",
    "ConfigValidationError",
    "DEFAULT_CONFIG",
    "assignments_to_overrides",
    "deep_merge",
    "get_config_path",
    "load_overrides",
]
