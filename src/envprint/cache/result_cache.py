"""Two-tier cache for composite fingerprints.

ResultCache keeps entries in an insertion-ordered memory table, optionally
backed by a durable tier. Policy values (ttl, maxSize, storage) are read from
the ConfigStore on every call, so a re-initialized config takes effect
immediately.

Expiry is lazy: an entry older than ``cache.ttl`` is treated as absent and
removed the next time it is looked up.

Eviction is first-in-first-out: when the memory table grows beyond
``cache.maxSize``, the earliest-inserted entries are dropped. Reads do not
refresh an entry's position, and overwriting a key keeps its original slot.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
import threading
from typing import Any

from envprint.cache.durable import CacheEntry, DurableTier, FileCacheTier
from envprint.config.store import ConfigStore
from envprint.hashing import Hasher, canonical_json, simple_hash
from envprint.models.base import CacheStats, now_ms

logger = logging.getLogger(__name__)

TierFactory = Callable[[ConfigStore], DurableTier]

# Storage mode -> durable tier factory
DURABLE_TIERS: dict[str, TierFactory] = {
    "file": FileCacheTier.from_config,
}

DEFAULT_TTL_MS = 3_600_000
DEFAULT_MAX_SIZE = 100


class ResultCache:
    """TTL and size bounded cache with an optional durable tier.

    The durable tier is created on first use when "cache.storage" names a
    mode other than "memory". If the mode is unknown or the tier fails to
    initialize, the cache logs a warning and stays memory-only for that
    mode. Failures of an initialized tier are logged per operation and never
    raised.

    Every read or write of the memory table happens under one lock, so
    concurrent collections cannot interleave evictions.

    Example:
        cache = ResultCache(config)
        key = cache.generate_cache_key({"tz": "UTC", "cpu": 8})
        cache.set(key, {"hash": "abc"})
        cache.get(key)  # {"hash": "abc"} until cache.ttl elapses
    """

    def __init__(
        self,
        config: ConfigStore,
        *,
        key_hasher: Hasher = simple_hash,
        clock: Callable[[], int] = now_ms,
        tier_factories: dict[str, TierFactory] | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            config: Store providing the "cache.*" policy
            key_hasher: Hash used by generate_cache_key()
            clock: Returns the current time in epoch milliseconds
            tier_factories: Storage mode -> durable tier factory
                (DURABLE_TIERS if omitted)
        """
        self._config = config
        self._key_hasher = key_hasher
        self._clock = clock
        self._tier_factories = tier_factories if tier_factories is not None else DURABLE_TIERS

        self._memory: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

        self._durable: DurableTier | None = None
        self._durable_mode: str | None = None
        self._failed_modes: set[str] = set()
        self._durable_lock = threading.Lock()

    # Policy

    @property
    def enabled(self) -> bool:
        return bool(self._config.get("cache.enabled", True))

    @property
    def ttl_ms(self) -> int:
        return int(self._config.get("cache.ttl", DEFAULT_TTL_MS))

    @property
    def max_size(self) -> int:
        return int(self._config.get("cache.maxSize", DEFAULT_MAX_SIZE))

    @property
    def storage(self) -> str:
        return str(self._config.get("cache.storage", "memory"))

    @property
    def durable_ready(self) -> bool:
        """True if a durable tier for the current storage mode is initialized."""
        return self._durable is not None and self._durable_mode == self.storage

    # Keys

    def generate_cache_key(self, stable_components: Any) -> str:
        """Derive a short key from a stable component set.

        Args:
            stable_components: Mapping of probe name to reduced value

        Returns:
            Hash of the canonical serialization (insensitive to key order)
        """
        return self._key_hasher(canonical_json(stable_components))

    # Operations

    def get(self, key: str) -> Any | None:
        """Look up a payload.

        Checks memory first, then the durable tier. A durable hit is
        promoted into memory with its original insertion time.

        Args:
            key: Cache key

        Returns:
            The payload, or None on a miss or an expired entry
        """
        now = self._clock()
        ttl = self.ttl_ms

        with self._lock:
            entry = self._memory.get(key)
            if entry is not None:
                if now - entry.inserted_at_ms < ttl:
                    return entry.payload
                del self._memory[key]
                logger.debug(f"Cache entry {key} expired in memory")

        durable = self._get_durable()
        if durable is None:
            return None

        try:
            entry = durable.get(key)
        except Exception as e:
            logger.warning(f"Durable cache read failed for {key}: {e}")
            return None
        if entry is None:
            return None

        if now - entry.inserted_at_ms >= ttl:
            logger.debug(f"Cache entry {key} expired in durable tier")
            try:
                durable.delete(key)
            except Exception as e:
                logger.warning(f"Failed to remove expired durable entry {key}: {e}")
            return None

        with self._lock:
            self._memory[key] = entry
            self._evict_locked()
        logger.debug(f"Promoted cache entry {key} from durable tier")
        return entry.payload

    def set(self, key: str, payload: Any) -> None:
        """Store a payload in memory and write it through to the durable tier.

        Args:
            key: Cache key
            payload: Value to store
        """
        entry = CacheEntry(key=key, payload=payload, inserted_at_ms=self._clock())

        with self._lock:
            self._memory[key] = entry
            self._evict_locked()

        durable = self._get_durable()
        if durable is None:
            return
        try:
            durable.put(entry)
        except Exception as e:
            logger.warning(f"Durable cache write failed for {key}: {e}")

    def delete(self, key: str) -> None:
        """Remove a key from both tiers."""
        with self._lock:
            self._memory.pop(key, None)

        durable = self._get_durable()
        if durable is None:
            return
        try:
            durable.delete(key)
        except Exception as e:
            logger.warning(f"Durable cache delete failed for {key}: {e}")

    def clear(self) -> None:
        """Remove every entry from both tiers."""
        with self._lock:
            self._memory.clear()

        durable = self._get_durable()
        if durable is None:
            return
        try:
            durable.clear()
        except Exception as e:
            logger.warning(f"Durable cache clear failed: {e}")

    def memory_keys(self) -> list[str]:
        """Return the memory-tier keys, oldest insertion first."""
        with self._lock:
            return list(self._memory)

    def get_stats_snapshot(self) -> CacheStats:
        """Return a diagnostic snapshot of size, tier state and policy."""
        with self._lock:
            size = len(self._memory)
        return CacheStats(
            enabled=self.enabled,
            memory_size=size,
            durable_ready=self.durable_ready,
            storage=self.storage,
            ttl_ms=self.ttl_ms,
            max_size=self.max_size,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._memory)

    # Internals

    def _evict_locked(self) -> None:
        """Drop earliest-inserted entries until within maxSize. Caller holds the lock."""
        max_size = max(self.max_size, 0)
        while len(self._memory) > max_size:
            oldest = next(iter(self._memory))
            del self._memory[oldest]
            logger.debug(f"Evicted cache entry {oldest}")

    def _get_durable(self) -> DurableTier | None:
        """Return the durable tier for the configured mode, creating it lazily."""
        mode = self.storage
        if mode == "memory" or mode in self._failed_modes:
            return None
        if self._durable is not None and self._durable_mode == mode:
            return self._durable

        with self._durable_lock:
            if self._durable is not None and self._durable_mode == mode:
                return self._durable

            factory = self._tier_factories.get(mode)
            if factory is None:
                logger.warning(f"Unknown cache storage mode '{mode}'; using memory only")
                self._failed_modes.add(mode)
                return None

            try:
                tier = factory(self._config)
            except Exception as e:
                logger.warning(f"Durable cache tier '{mode}' unavailable, using memory only: {e}")
                self._failed_modes.add(mode)
                return None

            self._durable = tier
            self._durable_mode = mode
            logger.debug(f"Durable cache tier '{mode}' initialized")
            return tier
