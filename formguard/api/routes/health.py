from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check plus rate limit registry size.

    Returns:
        dict: ``status`` set to "ok" and, when rate limiting is enabled, the
            limiter's counters (no client keys are exposed).
    """

    body: dict = {"status": "ok"}
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is not None:
        body["rate_limit"] = limiter.stats()
    return body
