"""Tests for the timeout guard."""

import asyncio
import time

import pytest

from envprint.collectors import GuardResult, TimeoutGuard


async def finish_after(delay: float, value: str, log: list[str] | None = None) -> str:
    await asyncio.sleep(delay)
    if log is not None:
        log.append(value)
    return value


async def fail_after(delay: float) -> str:
    await asyncio.sleep(delay)
    raise RuntimeError("late failure")


class TestTimeoutGuard:
    """Tests for TimeoutGuard.race()."""

    @pytest.mark.asyncio
    async def test_fast_operation_wins(self) -> None:
        """Test that an operation settling in time returns its value."""
        guard = TimeoutGuard()
        result = await guard.race(finish_after(0.01, "done"), timeout_ms=1000)
        assert isinstance(result, GuardResult)
        assert result.value == "done"
        assert result.timed_out is False
        assert guard.abandoned_count == 0

    @pytest.mark.asyncio
    async def test_deadline_returns_fallback(self) -> None:
        """Test that a slow operation yields the fallback near the deadline."""
        guard = TimeoutGuard()
        start = time.perf_counter()
        result = await guard.race(finish_after(0.5, "late"), timeout_ms=50, fallback="fb")
        elapsed = time.perf_counter() - start

        assert result.value == "fb"
        assert result.timed_out is True
        assert elapsed < 0.4
        await guard.drain()

    @pytest.mark.asyncio
    async def test_abandoned_work_keeps_running(self) -> None:
        """Test that the losing operation is abandoned, not cancelled."""
        guard = TimeoutGuard()
        log: list[str] = []
        result = await guard.race(finish_after(0.1, "finished", log), timeout_ms=10)

        assert result.timed_out is True
        assert guard.abandoned_count == 1
        assert log == []

        remaining = await guard.drain(timeout_ms=2000)
        assert remaining == 0
        assert log == ["finished"]

    @pytest.mark.asyncio
    async def test_late_failure_is_consumed(self) -> None:
        """Test that an abandoned operation's late error does not escape."""
        guard = TimeoutGuard()
        result = await guard.race(fail_after(0.05), timeout_ms=10, fallback=None)
        assert result.timed_out is True
        assert await guard.drain(timeout_ms=2000) == 0

    @pytest.mark.asyncio
    async def test_error_in_time_propagates(self) -> None:
        """Test that an operation failing before the deadline raises."""
        guard = TimeoutGuard()
        with pytest.raises(RuntimeError, match="late failure"):
            await guard.race(fail_after(0.0), timeout_ms=1000)

    @pytest.mark.asyncio
    async def test_no_deadline(self) -> None:
        """Test that a None budget waits for the operation."""
        guard = TimeoutGuard()
        result = await guard.race(finish_after(0.05, "slow"), timeout_ms=None)
        assert result.value == "slow"
        assert result.timed_out is False

    @pytest.mark.asyncio
    async def test_outer_cancellation_cancels_operation(self) -> None:
        """Test that cancelling the caller cancels the raced operation."""
        guard = TimeoutGuard()
        log: list[str] = []
        task = asyncio.create_task(guard.race(finish_after(0.2, "x", log), timeout_ms=1000))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0.3)
        assert log == []
