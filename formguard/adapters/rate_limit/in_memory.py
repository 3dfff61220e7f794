"""In-memory token bucket rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: the registry is split into shards, each guarded by its own lock,
  so clients hashed to different shards never contend.
- Budgets are not persisted. A restart, or a sweep, returns clients to full
  capacity.
"""

from __future__ import annotations

import logging
import math
import threading
import time
import zlib
from dataclasses import dataclass
from typing import Callable, Literal

from formguard.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)

SweepMode = Literal["idle", "clear"]


@dataclass
class _RateBudget:
    tokens: float
    last_refill_at: float


class _Shard:
    __slots__ = ("lock", "budgets")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.budgets: dict[str, _RateBudget] = {}


class InMemoryTokenBucketRateLimiter(AbstractRateLimiter):
    """Rate limiter using a continuously replenishing token bucket per key.

    Each key starts with ``capacity`` tokens. Every call first credits
    ``elapsed * capacity / refill_interval_seconds`` tokens (capped at
    ``capacity``) and then spends one token if that keeps the balance
    non-negative. Partial replenishment between calls is honored, so with a
    5 token / 1 hour budget a client regains one submission every 12 minutes.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        capacity: int = 5,
        refill_interval_seconds: float = 3600.0,
        shard_count: int = 16,
        sweep_mode: SweepMode = "idle",
        idle_multiplier: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            capacity: Maximum tokens per key (burst size).
            refill_interval_seconds: Seconds for an empty bucket to refill fully.
            shard_count: Number of independently locked registry shards.
            sweep_mode: "idle" drops budgets untouched for ``idle_multiplier``
                refill intervals; "clear" drops every budget on each sweep.
            idle_multiplier: Idle horizon for "idle" sweeps, in refill intervals.
            clock: Monotonic time source returning seconds.

        Raises:
            ValueError: If any numeric argument or the sweep mode is invalid.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if refill_interval_seconds <= 0:
            raise ValueError("refill_interval_seconds must be > 0")
        if shard_count < 1:
            raise ValueError("shard_count must be >= 1")
        if idle_multiplier <= 0:
            raise ValueError("idle_multiplier must be > 0")
        if sweep_mode not in ("idle", "clear"):
            raise ValueError("sweep_mode must be 'idle' or 'clear'")

        self._capacity = capacity
        self._refill_interval = float(refill_interval_seconds)
        self._sweep_mode: SweepMode = sweep_mode
        self._idle_horizon = self._refill_interval * idle_multiplier
        self._clock = clock
        self._shards = [_Shard() for _ in range(shard_count)]
        self._counter_lock = threading.Lock()
        self._allowed = 0
        self._denied = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def refill_interval_seconds(self) -> float:
        return self._refill_interval

    def _shard_for(self, key: str) -> _Shard:
        # crc32 is stable across processes, unlike the salted built-in hash().
        return self._shards[zlib.crc32(key.encode("utf-8")) % len(self._shards)]

    def _refill_locked(self, budget: _RateBudget, now: float) -> None:
        elapsed = max(0.0, now - budget.last_refill_at)
        if elapsed:
            credited = elapsed * self._capacity / self._refill_interval
            budget.tokens = min(float(self._capacity), budget.tokens + credited)
        budget.last_refill_at = now

    def _seconds_until_next_token(self, tokens: float) -> int:
        missing = 1.0 - tokens
        seconds = missing * self._refill_interval / self._capacity
        return max(1, int(math.ceil(seconds)))

    def _record(self, allowed: bool) -> None:
        with self._counter_lock:
            if allowed:
                self._allowed += 1
            else:
                self._denied += 1

    def try_consume(self, key: str) -> RateLimitResult:
        """Spend one token from the budget of the provided key.

        A first-seen key gets a full budget and is therefore admitted.

        Args:
            key: Client identifier for rate limiting (e.g., IP address).

        Returns:
            RateLimitResult with allowance decision and remaining tokens.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        shard = self._shard_for(key)
        with shard.lock:
            now = self._clock()
            budget = shard.budgets.get(key)
            if budget is None:
                budget = _RateBudget(tokens=float(self._capacity), last_refill_at=now)
                shard.budgets[key] = budget

            self._refill_locked(budget, now)

            if budget.tokens - 1.0 >= 0.0:
                budget.tokens -= 1.0
                result = RateLimitResult(
                    allowed=True,
                    capacity=self._capacity,
                    remaining=budget.tokens,
                    retry_after_seconds=None,
                )
            else:
                result = RateLimitResult(
                    allowed=False,
                    capacity=self._capacity,
                    remaining=budget.tokens,
                    retry_after_seconds=self._seconds_until_next_token(budget.tokens),
                )

        self._record(result.allowed)
        return result

    def sweep(self, now: float | None = None) -> int:
        """Remove budgets according to the configured sweep mode.

        Each shard is swept under its own lock, so in-flight consumes on other
        shards are not blocked.

        Args:
            now: Clock reading to sweep against (defaults to the limiter clock).

        Returns:
            Number of budgets removed.
        """
        removed = 0
        for shard in self._shards:
            with shard.lock:
                if self._sweep_mode == "clear":
                    removed += len(shard.budgets)
                    shard.budgets.clear()
                    continue

                cutoff = (self._clock() if now is None else now) - self._idle_horizon
                stale = [k for k, b in shard.budgets.items() if b.last_refill_at < cutoff]
                for key in stale:
                    del shard.budgets[key]
                removed += len(stale)

        logger.info(
            "rate_limit.swept",
            extra={"mode": self._sweep_mode, "removed": removed},
        )
        return removed

    def reset(self) -> None:
        """Drop every budget and reset counters."""

        for shard in self._shards:
            with shard.lock:
                shard.budgets.clear()
        with self._counter_lock:
            self._allowed = 0
            self._denied = 0

    def stats(self) -> dict[str, int | float | str]:
        """Return lightweight limiter metrics without exposing client keys."""

        entries = 0
        for shard in self._shards:
            with shard.lock:
                entries += len(shard.budgets)
        with self._counter_lock:
            return {
                "capacity": self._capacity,
                "refill_interval_seconds": self._refill_interval,
                "sweep_mode": self._sweep_mode,
                "shards": len(self._shards),
                "entries": entries,
                "allowed": self._allowed,
                "denied": self._denied,
            }
