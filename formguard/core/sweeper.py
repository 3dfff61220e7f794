"""Background sweep of the in-memory rate limit registry.

Every unique client address leaves a budget behind, so the registry is swept
on a fixed interval to keep memory bounded. The task is started from the app
lifespan and cancelled on shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from formguard.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)


async def run_registry_sweeper(
    limiter: AbstractRateLimiter,
    interval_s: float = 3600.0,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """Periodically drop stale budgets until cancelled.

    The sweep walks every shard, so it runs in a worker thread to keep the
    event loop serving requests meanwhile.
    """
    interval = max(1.0, float(interval_s))
    try:
        while True:
            await sleep(interval)
            try:
                removed = await asyncio.to_thread(limiter.sweep)
            except Exception:
                logger.exception("rate_limit.sweep_failed")
                continue
            if removed:
                logger.info("rate_limit.sweeper_removed", extra={"removed": removed})
    except asyncio.CancelledError:
        logger.debug("rate_limit.sweeper_stopped")
        raise
