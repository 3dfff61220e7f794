"""Fusion of detector signals into a single spam verdict."""

from __future__ import annotations

from typing import Iterable

from formguard.services.verdicts import RiskVerdict, SignalResult

MAX_SCORE = 100


class RiskFusionPolicy:
    """Sum detector scores and decide whether a submission is spam.

    A submission is spam when any single detector triggered, or when the
    combined score reaches ``block_threshold``. The combined score is clamped
    to ``[0, 100]`` once, after summing, so several moderate signals still add
    up even when one detector alone reports more than 100.

    Admitted submissions scoring at or above ``suspicious_threshold`` are
    "suspicious": callers log them for operators but do not deny them.
    """

    def __init__(self, *, block_threshold: int = 70, suspicious_threshold: int = 40) -> None:
        if not 0 < block_threshold <= MAX_SCORE:
            raise ValueError("block_threshold must be in 1..100")
        if not 0 <= suspicious_threshold <= block_threshold:
            raise ValueError("suspicious_threshold must be in 0..block_threshold")
        self.block_threshold = block_threshold
        self.suspicious_threshold = suspicious_threshold

    def evaluate(self, signal_results: Iterable[SignalResult]) -> RiskVerdict:
        total = 0
        any_triggered = False
        reasons: list[str] = []

        for result in signal_results:
            total += result.score
            any_triggered = any_triggered or result.triggered
            reasons.extend(r for r in result.reasons if r)

        score = max(0, min(MAX_SCORE, total))
        return RiskVerdict(
            is_spam=any_triggered or score >= self.block_threshold,
            score=score,
            reasons=tuple(reasons),
        )

    def is_suspicious(self, verdict: RiskVerdict) -> bool:
        return not verdict.is_spam and verdict.score >= self.suspicious_threshold
