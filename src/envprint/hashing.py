"""Hash functions and canonical serialization.

A hasher is any callable ``str -> str`` that returns the same output for the
same input. Two are provided:

- simple_hash: fast 32-bit shift-and-subtract string hash rendered in base 36.
  Used for cache keys, where speed matters more than collision resistance.
- sha256_hash: hex SHA-256 digest, the default for composite hashes.

canonical_json() turns probe output into a stable string: mapping keys are
sorted, so two maps with the same content serialize identically regardless
of insertion order.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import dataclasses
from datetime import date, datetime
from enum import Enum
import hashlib
import json
from pathlib import PurePath
from typing import Any

from pydantic import BaseModel

Hasher = Callable[[str], str]

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def simple_hash(text: str) -> str:
    """Hash a string with the classic ``h * 31 + c`` 32-bit string hash.

    The hash runs over UTF-16 code units with signed 32-bit wraparound, and the
    absolute value is rendered in base 36.

    Args:
        text: Input string

    Returns:
        Base-36 digest, "0" for the empty string
    """
    if not text:
        return "0"
    h = 0
    units = text.encode("utf-16-le")
    for i in range(0, len(units), 2):
        h = ((h << 5) - h + (units[i] | (units[i + 1] << 8))) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 0x100000000
    return _to_base36(abs(h))


def sha256_hash(text: str) -> str:
    """Return the hex SHA-256 digest of ``text`` encoded as UTF-8."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


HASHERS: dict[str, Hasher] = {
    "simple": simple_hash,
    "sha256": sha256_hash,
}


def get_hasher(name: str) -> Hasher:
    """Look up a hasher by policy name.

    Args:
        name: "simple" or "sha256"

    Returns:
        The hash function

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return HASHERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown hashing algorithm: {name}. Available: {', '.join(sorted(HASHERS))}"
        ) from None


def to_jsonable(value: Any) -> Any:
    """Reduce a probe value to JSON-native types with deterministic ordering."""
    if isinstance(value, Enum):
        return to_jsonable(value.value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, BaseModel):
        return to_jsonable(value.model_dump(mode="json"))
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(dataclasses.asdict(value))
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        items = [to_jsonable(item) for item in value]
        return sorted(items, key=lambda item: json.dumps(item, sort_keys=True))
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, PurePath):
        return str(value)
    return str(value)


def canonical_json(value: Any) -> str:
    """Serialize ``value`` to a canonical JSON string.

    Mapping keys are sorted and sets are ordered, so equal content always
    produces equal text.

    Args:
        value: Any probe result or aggregate of results

    Returns:
        Compact JSON text
    """
    return json.dumps(
        to_jsonable(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
