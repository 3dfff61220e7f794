"""Abuse gate: rate limiting plus spam scoring for one incoming submission.

The gate is the only component that knows about both the rate limiter and the
detectors. It runs them in a fixed order:

1. Spend a token from the client's budget. An exhausted budget short-circuits
   with ``rate_limited=True`` and no scoring work at all.
2. Run every detector (honeypot, timing, content) over the submission.
3. Fuse the signals into a verdict and admit the submission unless it is spam.

Moderate scores are admitted but logged as ``abuse_gate.flagged`` so operators
can spot borderline traffic without genuine users being locked out.
"""

from __future__ import annotations

import logging
from typing import Sequence

from formguard.adapters.rate_limit.base import AbstractRateLimiter
from formguard.core.client_ip import UNKNOWN_CLIENT_ID, hash_client_id
from formguard.services.detectors import SignalDetector, run_detectors
from formguard.services.risk_policy import RiskFusionPolicy
from formguard.services.verdicts import GateDecision, Submission

logger = logging.getLogger(__name__)


class AbuseGate:
    """Admit or deny submissions to a public form endpoint.

    Attributes:
        rate_limiter: Per-client token bucket registry owned by the caller,
            or None to score submissions without rate limiting.
        detectors: Signal detectors, in evaluation order.
        policy: Fusion policy turning signals into a verdict.
        strict_client_id: Raise on blank client ids instead of using a sentinel.
    """

    def __init__(
        self,
        *,
        rate_limiter: AbstractRateLimiter | None,
        detectors: Sequence[SignalDetector],
        policy: RiskFusionPolicy | None = None,
        strict_client_id: bool = False,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.detectors = tuple(detectors)
        self.policy = policy or RiskFusionPolicy()
        self.strict_client_id = strict_client_id

    def _resolve_client_id(self, client_id: str | None) -> str:
        if client_id and client_id.strip():
            return client_id
        if self.strict_client_id:
            raise ValueError("client_id must be a non-empty string")
        logger.warning("abuse_gate.missing_client_id", extra={"fallback": UNKNOWN_CLIENT_ID})
        return UNKNOWN_CLIENT_ID

    def admit(self, client_id: str | None, submission: Submission) -> GateDecision:
        """Decide whether a submission may proceed.

        Args:
            client_id: Opaque client key (usually the client IP address).
            submission: Form fields and optional timing metadata.

        Returns:
            GateDecision with the verdict and remaining rate budget.

        Raises:
            ValueError: If client_id is blank and strict_client_id is enabled.
        """
        key = self._resolve_client_id(client_id)
        key_hash = hash_client_id(key)

        limit = self.rate_limiter.try_consume(key) if self.rate_limiter is not None else None
        remaining = limit.remaining if limit is not None else None
        if limit is not None and not limit.allowed:
            logger.warning(
                "abuse_gate.rate_limited",
                extra={
                    "key_hash": key_hash,
                    "capacity": limit.capacity,
                    "retry_after_s": limit.retry_after_seconds,
                },
            )
            return GateDecision(
                admitted=False,
                rate_limited=True,
                verdict=None,
                remaining=remaining,
                retry_after_seconds=limit.retry_after_seconds,
            )

        signals = run_detectors(self.detectors, submission)
        verdict = self.policy.evaluate(signals)
        log_extra = {
            "key_hash": key_hash,
            "score": verdict.score,
            "reasons": list(verdict.reasons),
            "triggered": [s.detector for s in signals if s.triggered],
            "remaining": remaining,
        }

        if verdict.is_spam:
            logger.warning("abuse_gate.rejected", extra=log_extra)
        elif self.policy.is_suspicious(verdict):
            logger.warning("abuse_gate.flagged", extra=log_extra)
        else:
            logger.info("abuse_gate.admitted", extra=log_extra)

        return GateDecision(
            admitted=not verdict.is_spam,
            rate_limited=False,
            verdict=verdict,
            remaining=remaining,
        )
