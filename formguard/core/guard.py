"""Abuse gate wiring for FastAPI routes.

This module builds the gate from settings and translates its decisions into
HTTP semantics:

- rate limited → 429 with Retry-After / X-RateLimit-* headers
- judged spam  → 400 with a generic message (reasons go to the logs only)
- admitted     → the route continues with its normal processing

The gate (and the rate limit registry it owns) is created once per app in the
app factory and stored on ``app.state``; routes reach it through the
``get_abuse_gate`` dependency rather than a module-level global.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

from fastapi import Request

from formguard.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter
from formguard.core.client_ip import UNKNOWN_CLIENT_ID, get_client_ip
from formguard.core.config import GuardSettings, settings
from formguard.core.errors import RateLimitedAppError, SpamRejectedAppError, ValidationAppError
from formguard.services.abuse_gate import AbuseGate
from formguard.services.detectors import build_detectors
from formguard.services.risk_policy import RiskFusionPolicy
from formguard.services.verdicts import GateDecision, Submission


def build_rate_limiter(guard: GuardSettings) -> InMemoryTokenBucketRateLimiter | None:
    """Create the per-client registry, or None when rate limiting is disabled."""

    if not guard.rate_limit_enabled:
        return None
    return InMemoryTokenBucketRateLimiter(
        capacity=guard.rate_limit_capacity,
        refill_interval_seconds=guard.rate_limit_refill_interval_seconds,
        shard_count=guard.rate_limit_shards,
        sweep_mode=guard.rate_limit_sweep_mode,
        idle_multiplier=guard.rate_limit_idle_multiplier,
    )


def build_abuse_gate(
    guard: GuardSettings,
    rate_limiter: InMemoryTokenBucketRateLimiter | None = None,
) -> AbuseGate:
    """Assemble the abuse gate from settings.

    Args:
        guard: Abuse-protection settings.
        rate_limiter: Registry to inject; built from settings when omitted.

    Returns:
        AbuseGate: Gate with detectors in honeypot, timing, content order.
    """

    return AbuseGate(
        rate_limiter=rate_limiter if rate_limiter is not None else build_rate_limiter(guard),
        detectors=build_detectors(guard),
        policy=RiskFusionPolicy(
            block_threshold=guard.block_threshold,
            suspicious_threshold=guard.suspicious_threshold,
        ),
        strict_client_id=guard.strict_client_id,
    )


def get_abuse_gate(request: Request) -> AbuseGate:
    """FastAPI dependency returning the app's abuse gate."""

    return request.app.state.abuse_gate


def rate_limit_headers(decision: GateDecision, capacity: int) -> dict[str, str]:
    """Build rate limit response headers for a throttled decision."""

    headers = {
        "Retry-After": str(decision.retry_after_seconds or 0),
        "X-RateLimit-Limit": str(capacity),
    }
    if decision.remaining is not None:
        headers["X-RateLimit-Remaining"] = str(math.floor(decision.remaining))
    return headers


def enforce_abuse_gate(
    request: Request,
    gate: AbuseGate,
    fields: dict,
    form_rendered_at: datetime | None,
    *,
    guard: GuardSettings | None = None,
) -> GateDecision:
    """Run the gate for one request and raise if it must be denied.

    The submission is stamped with the server receipt time, so the timing
    detector measures against a clock the client does not control.

    Args:
        request: FastAPI request (used for the client address).
        gate: Abuse gate to consult.
        fields: Raw form fields.
        form_rendered_at: When the form was shown, as reported by the page.
        guard: Settings override (defaults to global settings).

    Returns:
        GateDecision: The admitted decision.

    Raises:
        RateLimitedAppError: 429 when the client's budget is exhausted.
        SpamRejectedAppError: 400 when the submission is judged spam.
        ValidationAppError: 400 when no client address is available and
            strict_client_id is enabled.
    """

    cfg = guard or settings.guard
    client_id: str | None = get_client_ip(request, trust_proxy_headers=cfg.trust_proxy_headers)
    submission = Submission(
        fields=fields,
        form_rendered_at=form_rendered_at,
        form_submitted_at=datetime.now(timezone.utc),
    )

    # An unidentifiable client is left to the gate's missing-id policy.
    if client_id == UNKNOWN_CLIENT_ID:
        client_id = None

    try:
        decision = gate.admit(client_id, submission)
    except ValueError as exc:
        raise ValidationAppError(
            code="client_unidentified",
            message="The client address could not be determined.",
        ) from exc

    if decision.rate_limited:
        capacity = gate.rate_limiter.capacity if gate.rate_limiter is not None else 0
        raise RateLimitedAppError(
            code="rate_limited",
            message="Too many submissions. Please try again later.",
            details={"retry_after": decision.retry_after_seconds or 0},
            headers=rate_limit_headers(decision, capacity) if cfg.rate_limit_include_headers else None,
        )

    if not decision.admitted:
        raise SpamRejectedAppError(
            code="submission_rejected",
            message="Your submission could not be processed.",
        )

    return decision
