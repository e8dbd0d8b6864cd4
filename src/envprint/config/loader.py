"""Configuration file loading for envprint.

This module provides:
- YAML config file discovery and loading
- Environment variable expansion in config values
- Parsing of ``path=value`` overrides given on the command line
- Clear, user-friendly error messages for config issues

The result of loading is a plain nested dict meant to be passed to
``ConfigStore.init()``; the store itself performs no validation.
"""

import os
from pathlib import Path
import re
from typing import Any

import yaml


class ConfigError(Exception):
    """Base exception for configuration errors.

    Attributes:
        message: The main error message
        file_path: Path to the config file (if applicable)
        line_number: Line number where the error occurred (if known)
        suggestion: Helpful suggestion for fixing the error
    """

    def __init__(
        self,
        message: str,
        *,
        file_path: str | None = None,
        line_number: int | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.message = message
        self.file_path = file_path
        self.line_number = line_number
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.file_path:
            location = f"Error in {self.file_path}"
            if self.line_number:
                location += f" line {self.line_number}"
            parts = [location + ":"]
        else:
            parts = ["Configuration error:"]

        parts.append(f"  {self.message}")
        if self.suggestion:
            parts.append(f"  Suggestion: {self.suggestion}")
        return "\n".join(parts)


class ConfigSyntaxError(ConfigError):
    """Error for YAML syntax issues."""


class ConfigValidationError(ConfigError):
    """Error for config documents or overrides with the wrong shape."""


# Environment variable pattern: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def _format_yaml_error(error: yaml.YAMLError, file_path: str) -> ConfigSyntaxError:
    """Convert a YAML error to a ConfigSyntaxError carrying its line number."""
    mark = getattr(error, "problem_mark", None)
    line_number = mark.line + 1 if mark is not None else None  # marks are 0-indexed

    problem = getattr(error, "problem", None)
    message = f"YAML syntax error: {problem}" if problem else "Invalid YAML syntax"

    suggestion = None
    if "'\\t'" in str(error):
        suggestion = "Use spaces instead of tabs for indentation"

    return ConfigSyntaxError(
        message, file_path=file_path, line_number=line_number, suggestion=suggestion
    )


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Supports ${VAR} and ${VAR:-default} syntax. Unknown variables without a
    default are left untouched.

    Args:
        value: The value to expand (string, dict, list, or other)

    Returns:
        The value with environment variables expanded
    """
    if isinstance(value, str):

        def replace_env_var(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            if match.group(2) is not None:
                return match.group(2)
            return match.group(0)

        return ENV_VAR_PATTERN.sub(replace_env_var, value)
    if isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def get_config_path(custom_path: str | None = None) -> Path | None:
    """Determine the configuration file path.

    Checks locations in this order:
    1. Custom path (if provided via --config flag)
    2. ENVPRINT_CONFIG_PATH environment variable
    3. ~/.config/envprint/config.yaml (XDG standard)
    4. ~/.envprint/config.yaml (legacy location)

    Args:
        custom_path: Optional custom config path from CLI

    Returns:
        Path to config file if found, None otherwise

    Raises:
        FileNotFoundError: If ``custom_path`` is given but does not exist
    """
    if custom_path:
        path = Path(custom_path).expanduser()
        if path.exists():
            return path
        raise FileNotFoundError(f"Config file not found: {custom_path}")

    env_path = os.environ.get("ENVPRINT_CONFIG_PATH")
    if env_path:
        path = Path(env_path).expanduser()
        # Env var set but file missing: fall back to defaults
        return path if path.exists() else None

    xdg_path = Path.home() / ".config" / "envprint" / "config.yaml"
    if xdg_path.exists():
        return xdg_path

    legacy_path = Path.home() / ".envprint" / "config.yaml"
    if legacy_path.exists():
        return legacy_path

    return None


def load_overrides(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration overrides from a YAML file.

    Args:
        config_path: Explicit file path; discovered with get_config_path()
            when omitted

    Returns:
        Nested override dict (empty when no config file exists)

    Raises:
        FileNotFoundError: If an explicit path doesn't exist
        ConfigSyntaxError: If the file has invalid YAML syntax
        ConfigValidationError: If the document is not a mapping
    """
    path = get_config_path(str(config_path) if config_path else None)
    if path is None:
        return {}

    content = path.read_text()
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise _format_yaml_error(e, str(path)) from e

    if not isinstance(data, dict):
        raise ConfigValidationError(
            f"Top-level document must be a mapping, got {type(data).__name__}",
            file_path=str(path),
            suggestion="Start the file with a key such as 'cache:'",
        )

    return expand_env_vars(data)


def parse_assignment(assignment: str) -> tuple[str, Any]:
    """Parse a ``path=value`` override.

    The value is decoded as a YAML scalar, so ``cache.enabled=false`` yields
    the boolean False and ``cache.ttl=500`` the integer 500.

    Args:
        assignment: Text of the form "dotted.path=value"

    Returns:
        Tuple of (path, decoded value)

    Raises:
        ConfigValidationError: If the text has no '=' or an empty path
    """
    path, sep, raw_value = assignment.partition("=")
    path = path.strip()
    if not sep or not path:
        raise ConfigValidationError(
            f"Invalid override '{assignment}'",
            suggestion="Use the form path=value, e.g. cache.ttl=60000",
        )
    try:
        value = yaml.safe_load(raw_value) if raw_value.strip() else ""
    except yaml.YAMLError:
        value = raw_value
    return path, expand_env_vars(value)


def assignments_to_overrides(assignments: list[str]) -> dict[str, Any]:
    """Build a nested override dict from ``path=value`` strings.

    Args:
        assignments: Override strings, later entries win

    Returns:
        Nested dict suitable for merging into a config tree
    """
    overrides: dict[str, Any] = {}
    for assignment in assignments:
        path, value = parse_assignment(assignment)
        node = overrides
        segments = path.split(".")
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[segments[-1]] = value
    return overrides
