"""Collection orchestrator.

CollectionOrchestrator drives one full collection cycle:

1. Optionally re-initialize the config with per-call overrides.
2. If caching is on, derive a cache key from a few cheap, synchronous,
   high-priority probes and return the cached composite on a hit.
3. Otherwise run every enabled probe concurrently. Each probe is isolated:
   a failure, a timeout or a late disable turns into a None component and
   never affects its siblings.
4. Wait for every probe to settle, aggregate results by name, hash the
   canonical serialization and populate the cache.

Async probes run on the event loop; synchronous probes run in a worker thread
pool so they overlap with each other. Timeouts abandon the work rather than
cancel it (see TimeoutGuard).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Mapping
from concurrent.futures import ThreadPoolExecutor
import copy
import inspect
import logging
from typing import Any, Callable

from pydantic import ValidationError

from envprint import __version__
from envprint.cache.result_cache import ResultCache
from envprint.collectors.errors import CollectionFailure, ProbeDisabled, ProbeFailure, ProbeTimeout
from envprint.collectors.timeout import TimeoutGuard
from envprint.config.store import ConfigStore
from envprint.hashing import Hasher, canonical_json, get_hasher
from envprint.models.base import CompositeFingerprint, ProbeOutcome, ProbeState, now_ms
from envprint.performance.profiler import ProbeProfiler
from envprint.probes.base import Probe
from envprint.probes.builtin import BUILTIN_FIELD_NAMES
from envprint.probes.registry import ProbeRegistry
from envprint.sentry import add_breadcrumb, capture_probe_error, set_collection_context

logger = logging.getLogger(__name__)

# Internal probe name -> public component name, for names that differ
COMPONENT_FIELD_NAMES: Mapping[str, str] = BUILTIN_FIELD_NAMES


async def _completed(value: Any) -> Any:
    return value


class CollectionOrchestrator:
    """Runs probes concurrently and produces composite fingerprints.

    The config store and the result cache are passed in explicitly, so each
    orchestrator (and each test) can have isolated instances. The
    orchestrator owns a thread pool for synchronous probes; use it as an
    async context manager or call close() when done.

    Example:
        config = ConfigStore()
        registry = ProbeRegistry(config)
        registry.register_all(builtin_probes())

        async with CollectionOrchestrator(registry) as orchestrator:
            composite = await orchestrator.collect()
            print(composite.hash, composite.cached)
    """

    def __init__(
        self,
        registry: ProbeRegistry,
        cache: ResultCache | None = None,
        *,
        hasher: Hasher | None = None,
        field_names: Mapping[str, str] | None = None,
        guard: TimeoutGuard | None = None,
        profiler: ProbeProfiler | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            registry: Probes to run; its config store is shared
            cache: Result cache (a new one over the registry's config if omitted)
            hasher: Composite hash function; resolved from "hashing.algorithm"
                on every collection when omitted
            field_names: Probe name -> public component name table
            guard: Timeout guard (a new one if omitted)
            profiler: Per-probe timing statistics (a new one if omitted)
            clock: Returns the current time in epoch milliseconds
        """
        self._registry = registry
        self._config: ConfigStore = registry.config
        self._cache = cache if cache is not None else ResultCache(self._config, clock=clock)
        self._hasher = hasher
        self._field_names: Mapping[str, str] = (
            field_names if field_names is not None else COMPONENT_FIELD_NAMES
        )
        self._guard = guard if guard is not None else TimeoutGuard()
        self._profiler = profiler if profiler is not None else ProbeProfiler()
        self._clock = clock
        self._executor: ThreadPoolExecutor | None = None
        self._last_outcomes: dict[str, ProbeOutcome] = {}

    @property
    def registry(self) -> ProbeRegistry:
        return self._registry

    @property
    def config(self) -> ConfigStore:
        return self._config

    @property
    def cache(self) -> ResultCache:
        return self._cache

    @property
    def guard(self) -> TimeoutGuard:
        return self._guard

    @property
    def profiler(self) -> ProbeProfiler:
        return self._profiler

    @property
    def last_outcomes(self) -> dict[str, ProbeOutcome]:
        """Outcome of each probe in the most recent non-cached collection."""
        return dict(self._last_outcomes)

    async def __aenter__(self) -> CollectionOrchestrator:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the worker pool without waiting for abandoned probes."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    async def collect(
        self, config_overrides: Mapping[str, Any] | None = None
    ) -> CompositeFingerprint:
        """Run one collection cycle.

        Args:
            config_overrides: When non-empty, the config is re-initialized
                from the defaults plus these overrides before collecting

        Returns:
            The composite fingerprint, tagged cached=True on a cache hit

        Raises:
            CollectionFailure: If the components cannot be serialized or hashed
        """
        if config_overrides:
            self._config.init(config_overrides)

        cache_enabled = self._cache.enabled
        cache_key: str | None = None

        if cache_enabled:
            stable = await self._collect_stable_components()
            if stable:
                cache_key = self._cache.generate_cache_key(stable)
                cached = self._lookup(cache_key)
                if cached is not None:
                    logger.debug(f"Cache hit for key {cache_key}")
                    return cached

        probes = self._registry.get_enabled_sorted()
        set_collection_context(
            probes=[probe.name for probe in probes],
            cache_enabled=cache_enabled,
            storage=self._cache.storage,
        )
        logger.debug(f"Running {len(probes)} probes")

        settled = await asyncio.gather(*(self._run_probe(probe) for probe in probes))

        results: dict[str, Any] = {}
        outcomes: dict[str, ProbeOutcome] = {}
        for probe, (value, outcome) in zip(probes, settled):
            results[probe.name] = value
            outcomes[probe.name] = outcome
        self._last_outcomes = outcomes

        components = {self._field_names.get(name, name): value for name, value in results.items()}
        timestamp = self._clock()

        try:
            algorithm = str(self._config.get("hashing.algorithm", "sha256"))
            hasher = self._hasher or get_hasher(algorithm)
            digest = hasher(canonical_json(components))
        except Exception as e:
            raise CollectionFailure("Failed to hash collected components", cause=e) from e

        if cache_enabled and cache_key is None:
            stable = self._extract_stable_components(probes, results)
            if stable:
                cache_key = self._cache.generate_cache_key(stable)

        composite = CompositeFingerprint(
            components=components,
            hash=digest,
            timestamp_ms=timestamp,
            cached=False,
            cache_key=cache_key,
            version=__version__,
        )

        if cache_enabled and cache_key is not None:
            self._cache.set(cache_key, composite.to_cache_payload())

        return composite

    # Cache path

    def _select_stable_probes(self) -> list[Probe]:
        """Pick the cheap synchronous probes that feed the cache key."""
        threshold = int(self._config.get("cache.stablePriorityMax", 10))
        limit = int(self._config.get("cache.stableProbeLimit", 5))
        candidates = [
            probe
            for probe in self._registry.get_enabled_sorted()
            if not probe.requires_async and probe.priority <= threshold
        ]
        return candidates[:limit]

    async def _collect_stable_components(self) -> dict[str, Any]:
        """Run the stable probes inline and reduce their results."""
        stable: dict[str, Any] = {}
        for probe in self._select_stable_probes():
            try:
                reduced = self._reduce(probe, probe.execute())
            except Exception as e:
                logger.debug(f"Stable component extraction failed for {probe.name}: {e}")
                continue
            finally:
                await self._cleanup(probe)
            if reduced is not None:
                stable[probe.name] = reduced
        return stable

    def _extract_stable_components(
        self, probes: list[Probe], results: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Reduce already collected results of every probe."""
        stable: dict[str, Any] = {}
        for probe in probes:
            value = results.get(probe.name)
            if value is None:
                continue
            try:
                reduced = self._reduce(probe, value)
            except Exception as e:
                logger.debug(f"Stable component extraction failed for {probe.name}: {e}")
                continue
            if reduced is not None:
                stable[probe.name] = reduced
        return stable

    @staticmethod
    def _reduce(probe: Probe, result: Any) -> Any:
        """Reduce a result for the cache key; raises if it cannot be serialized."""
        reduced = probe.get_stable_components(result)
        if reduced is not None:
            canonical_json(reduced)
        return reduced

    def _lookup(self, cache_key: str) -> CompositeFingerprint | None:
        payload = self._cache.get(cache_key)
        if payload is None:
            return None
        try:
            return CompositeFingerprint.from_cache_payload(copy.deepcopy(payload), cache_key)
        except (KeyError, TypeError, ValidationError) as e:
            logger.warning(f"Discarding malformed cache entry {cache_key}: {e}")
            self._cache.delete(cache_key)
            return None

    # Probe execution

    async def _run_probe(self, probe: Probe) -> tuple[Any, ProbeOutcome]:
        """Run one probe to a terminal state; never raises except on cancellation."""
        name = probe.name

        if not self._registry.is_enabled(probe):
            skipped = ProbeDisabled("Disabled after selection", probe_name=name)
            logger.debug(f"Skipping probe {name}: {skipped}")
            return None, ProbeOutcome(name=name, state=ProbeState.DISABLED, error=str(skipped))

        timeout_ms = self._resolve_timeout(probe)
        try:
            raced = await self._guard.race(self._start(probe), timeout_ms)
        except Exception as e:
            failure = ProbeFailure(f"{type(e).__name__}: {e}", probe_name=name, cause=e)
            logger.warning(f"Probe failed: {failure}")
            add_breadcrumb(f"Probe {name} failed", category="probe", level="warning")
            capture_probe_error(name, e)
            value = None
            outcome = ProbeOutcome(name=name, state=ProbeState.FAILED, error=str(failure))
        else:
            if raced.timed_out:
                timeout = ProbeTimeout(name, timeout_ms or 0)
                logger.warning(f"Probe abandoned: {timeout}")
                add_breadcrumb(
                    f"Probe {name} timed out",
                    category="probe",
                    level="warning",
                    data={"timeout_ms": timeout_ms},
                )
                value = None
                outcome = ProbeOutcome(
                    name=name,
                    state=ProbeState.TIMED_OUT,
                    elapsed_ms=raced.elapsed_ms,
                    error=str(timeout),
                )
            else:
                value = raced.value
                outcome = ProbeOutcome(
                    name=name, state=ProbeState.COMPLETED, elapsed_ms=raced.elapsed_ms
                )
        finally:
            await self._cleanup(probe)

        self._profiler.record(outcome)
        return value, outcome

    def _start(self, probe: Probe) -> Awaitable[Any]:
        """Begin a probe's execution and return something to await."""
        if probe.requires_async:
            pending = probe.execute()
            return pending if inspect.isawaitable(pending) else _completed(pending)

        if self._config.get("performance.offloadSync", True):
            loop = asyncio.get_running_loop()
            return loop.run_in_executor(self._get_executor(), probe.execute)
        return _completed(probe.execute())

    def _resolve_timeout(self, probe: Probe) -> float | None:
        """Return the probe's budget in ms, or None for no deadline."""
        if probe.timeout_ms is not None:
            return float(probe.timeout_ms)
        group = getattr(probe, "timeout_group", None)
        if not group:
            return None
        budget = self._config.get(f"timeouts.{group}")
        if budget is None:
            budget = self._config.get("timeouts.default")
        return float(budget) if budget else None

    async def _cleanup(self, probe: Probe) -> None:
        try:
            pending = probe.cleanup()
            if inspect.isawaitable(pending):
                await pending
        except Exception as e:
            logger.warning(f"Cleanup failed for probe {probe.name}: {e}")

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            workers = max(int(self._config.get("performance.maxWorkers", 4)), 1)
            self._executor = ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="envprint-probe"
            )
        return self._executor
