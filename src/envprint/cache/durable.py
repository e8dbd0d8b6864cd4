"""Durable cache tier.

The durable tier backs the in-memory result cache so composites survive a
process restart. Any object with get/put/delete/clear methods can act as a
tier; FileCacheTier stores one JSON document per entry in a directory.
"""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import json
import logging
import os
from pathlib import Path
import re
import tempfile
from typing import Any, Protocol

from envprint.config.store import ConfigStore
from envprint.hashing import to_jsonable

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class CacheTierFailure(Exception):
    """A durable tier operation failed.

    Attributes:
        operation: The tier method that failed (get, put, delete, clear, init)
        cause: The underlying exception
    """

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        message = f"Durable cache {operation} failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.operation = operation
        self.cause = cause


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload and the time it was inserted.

    Attributes:
        key: Cache key
        payload: Stored value
        inserted_at_ms: Wall-clock insertion time in epoch milliseconds
    """

    key: str
    payload: Any
    inserted_at_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "payload": self.payload, "insertedAtMillis": self.inserted_at_ms}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(
            key=data["key"],
            payload=data["payload"],
            inserted_at_ms=int(data["insertedAtMillis"]),
        )


class DurableTier(Protocol):
    """Interface of a durable cache tier. Every method may raise."""

    def get(self, key: str) -> CacheEntry | None: ...

    def put(self, entry: CacheEntry) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


class FileCacheTier:
    """Stores cache entries as JSON files in one directory.

    Writes go to a temporary file that is renamed into place, so readers
    never see a partially written entry.
    """

    def __init__(self, directory: str | Path) -> None:
        """Create the tier, creating ``directory`` if needed.

        Raises:
            CacheTierFailure: If the directory cannot be created
        """
        self._directory = Path(directory).expanduser()
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheTierFailure("init", e) from e

    @classmethod
    def from_config(cls, config: ConfigStore) -> FileCacheTier:
        """Build a tier from the "cache.directory" setting."""
        return cls(config.get("cache.directory", "~/.cache/envprint"))

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, key: str) -> Path:
        name = key if _SAFE_KEY.match(key) else hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._directory / f"{name}.json"

    def get(self, key: str) -> CacheEntry | None:
        path = self._path_for(key)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            raise CacheTierFailure("get", e) from e
        try:
            entry = CacheEntry.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise CacheTierFailure("get", e) from e
        # A hashed file name could in theory collide
        return entry if entry.key == key else None

    def put(self, entry: CacheEntry) -> None:
        path = self._path_for(entry.key)
        try:
            document = json.dumps(to_jsonable(entry.to_dict()))
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(document)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise CacheTierFailure("put", e) from e

    def delete(self, key: str) -> None:
        try:
            self._path_for(key).unlink(missing_ok=True)
        except OSError as e:
            raise CacheTierFailure("delete", e) from e

    def clear(self) -> None:
        try:
            for path in self._directory.glob("*.json"):
                path.unlink(missing_ok=True)
        except OSError as e:
            raise CacheTierFailure("clear", e) from e

    def __repr__(self) -> str:
        return f"FileCacheTier(directory={str(self._directory)!r})"
