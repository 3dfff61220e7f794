"""Tests for the background registry sweeper."""

import asyncio
import threading

import pytest

from formguard.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter
from formguard.core.sweeper import run_registry_sweeper


class _StopAfter:
    """Fake sleep that cancels the loop after a number of intervals."""

    def __init__(self, iterations: int) -> None:
        self.iterations = iterations
        self.intervals: list[float] = []

    async def __call__(self, interval: float) -> None:
        if len(self.intervals) >= self.iterations:
            raise asyncio.CancelledError
        self.intervals.append(interval)


def test_sweeper_sweeps_each_interval(clock) -> None:
    limiter = InMemoryTokenBucketRateLimiter(capacity=1, sweep_mode="clear", clock=clock)
    sleep = _StopAfter(3)
    sweeps: list[int] = []
    original = limiter.sweep

    def _counting_sweep(now=None) -> int:
        limiter.try_consume(f"client-{len(sweeps)}")
        sweeps.append(1)
        return original(now)

    limiter.sweep = _counting_sweep  # type: ignore[method-assign]

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(run_registry_sweeper(limiter, 600, sleep=sleep))

    assert len(sweeps) == 3
    assert sleep.intervals == [600.0, 600.0, 600.0]
    assert limiter.stats()["entries"] == 0


def test_sweeper_interval_has_a_floor(clock) -> None:
    limiter = InMemoryTokenBucketRateLimiter(clock=clock)
    sleep = _StopAfter(1)

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(run_registry_sweeper(limiter, 0, sleep=sleep))

    assert sleep.intervals == [1.0]


def test_sweeper_survives_a_failing_sweep(clock, caplog) -> None:
    limiter = InMemoryTokenBucketRateLimiter(clock=clock)
    sleep = _StopAfter(2)
    calls: list[int] = []

    def _flaky_sweep(now=None) -> int:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return 0

    limiter.sweep = _flaky_sweep  # type: ignore[method-assign]

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(run_registry_sweeper(limiter, 60, sleep=sleep))

    assert len(calls) == 2
    assert any(r.getMessage() == "rate_limit.sweep_failed" for r in caplog.records)


def test_sweep_runs_off_the_event_loop_thread(clock) -> None:
    limiter = InMemoryTokenBucketRateLimiter(clock=clock)
    sleep = _StopAfter(1)
    sweep_threads: list[int] = []
    original = limiter.sweep

    def _recording_sweep(now=None) -> int:
        sweep_threads.append(threading.get_ident())
        return original(now)

    limiter.sweep = _recording_sweep  # type: ignore[method-assign]

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(run_registry_sweeper(limiter, 60, sleep=sleep))

    assert len(sweep_threads) == 1
    assert sweep_threads[0] != threading.get_ident()
