"""Application factory for the FastAPI app.

Centralizes app construction (abuse gate, middleware, handlers, routers,
background sweeper) to improve testability: tests build isolated apps with
their own gate and registry instead of sharing process-wide state.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from formguard.api.routes import health_router, submissions_router
from formguard.core.config import GuardSettings, settings
from formguard.core.exception_handlers import setup_exception_handlers
from formguard.core.guard import build_abuse_gate
from formguard.core.logging import configure_logging
from formguard.core.middleware import request_id_middleware
from formguard.core.sweeper import run_registry_sweeper
from formguard.services.abuse_gate import AbuseGate

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    limiter = app.state.rate_limiter
    sweeper: asyncio.Task | None = None
    if limiter is not None:
        sweeper = asyncio.create_task(
            run_registry_sweeper(limiter, app.state.guard.rate_limit_sweep_interval_seconds),
            name="rate-limit-sweeper",
        )
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            await asyncio.gather(sweeper, return_exceptions=True)


def create_app(
    *,
    guard: GuardSettings | None = None,
    gate: AbuseGate | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        guard: Abuse-protection settings (defaults to global settings).
        gate: Pre-built gate to use instead of one built from settings.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    cfg = guard or settings.guard
    if gate is None:
        gate = build_abuse_gate(cfg)

    app = FastAPI(
        title="formguard",
        description=(
            "Abuse protection for public form endpoints: per-client rate "
            "limiting plus honeypot, timing and content spam scoring."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.abuse_gate = gate
    app.state.guard = cfg
    app.state.rate_limiter = gate.rate_limiter

    logger.info(
        "app.configured",
        extra={
            "rate_limit_enabled": gate.rate_limiter is not None,
            "detectors": [d.name for d in gate.detectors],
            "block_threshold": gate.policy.block_threshold,
        },
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(submissions_router, prefix="/v1")
    app.include_router(health_router)

    return app
