"""Deadline racing with abandonment semantics.

TimeoutGuard races an awaitable against a deadline. When the deadline wins,
the caller gets the fallback immediately, but the underlying work is not
cancelled: it keeps running and its eventual result or error is discarded.
This bounds collection latency without requiring probes to support
cancellation (threads running synchronous probes cannot be interrupted
anyway).

The guard keeps a strong reference to every abandoned task until it
finishes, so the event loop does not garbage-collect it mid-flight.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
import logging
import time
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class GuardResult(Generic[T]):
    """Outcome of a race.

    Attributes:
        value: The operation's result, or the fallback on timeout
        timed_out: True if the deadline fired first
        elapsed_ms: Time until the race resolved
    """

    value: T | Any
    timed_out: bool
    elapsed_ms: float


class TimeoutGuard:
    """Races operations against deadlines without blocking on the loser.

    Example:
        guard = TimeoutGuard()
        result = await guard.race(fetch_peers(), timeout_ms=50, fallback=[])
        if result.timed_out:
            ...  # fetch_peers() is still running; its result will be dropped
    """

    def __init__(self) -> None:
        self._abandoned: set[asyncio.Future[Any]] = set()

    @property
    def abandoned_count(self) -> int:
        """Number of abandoned operations still running."""
        return len(self._abandoned)

    async def race(
        self,
        operation: Awaitable[T],
        timeout_ms: float | None,
        fallback: Any = None,
    ) -> GuardResult[T]:
        """Await ``operation`` for at most ``timeout_ms`` milliseconds.

        Args:
            operation: Coroutine or future to run
            timeout_ms: Deadline in milliseconds; None waits indefinitely
            fallback: Value returned when the deadline fires first

        Returns:
            GuardResult with the value or the fallback

        Raises:
            Exception: Whatever ``operation`` raised, if it settled in time
        """
        start = time.perf_counter()
        future = asyncio.ensure_future(operation)

        try:
            if timeout_ms is None:
                value = await future
                return GuardResult(value, False, _elapsed_ms(start))

            done, _ = await asyncio.wait({future}, timeout=timeout_ms / 1000)
        except asyncio.CancelledError:
            future.cancel()
            raise

        if future in done:
            return GuardResult(future.result(), False, _elapsed_ms(start))

        self._abandon(future)
        return GuardResult(fallback, True, _elapsed_ms(start))

    async def drain(self, timeout_ms: float | None = None) -> int:
        """Wait for abandoned operations to finish.

        Args:
            timeout_ms: Maximum time to wait; None waits for all

        Returns:
            Number of abandoned operations still running afterwards
        """
        if self._abandoned:
            await asyncio.wait(
                set(self._abandoned),
                timeout=None if timeout_ms is None else timeout_ms / 1000,
            )
        return len(self._abandoned)

    def _abandon(self, future: asyncio.Future[Any]) -> None:
        self._abandoned.add(future)
        future.add_done_callback(self._on_abandoned_done)

    def _on_abandoned_done(self, future: asyncio.Future[Any]) -> None:
        self._abandoned.discard(future)
        if future.cancelled():
            return
        # Retrieve the exception so the loop does not report it as unhandled
        error = future.exception()
        if error is not None:
            logger.debug(f"Abandoned operation failed after timeout: {error}")
        else:
            logger.debug("Abandoned operation finished after timeout; result discarded")


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
