"""Formatters package for envprint.

- JsonFormatter: JSON output for composite fingerprints
"""

from envprint.formatters.json_formatter import JsonFormatter

__all__ = [
    "JsonFormatter",
]
