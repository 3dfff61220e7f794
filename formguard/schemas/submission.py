"""Pydantic schemas for the submission screening endpoint."""

from __future__ import annotations

from datetime import datetime
from typing import Dict

from pydantic import BaseModel, Field

from formguard.services.verdicts import GateDecision

FieldValue = str | bool | int | float | None


class ScreenSubmissionRequest(BaseModel):
    """A public form payload to be screened before it is stored."""

    fields: Dict[str, FieldValue] = Field(
        default_factory=dict,
        description="Submitted form fields, including hidden honeypot fields as sent.",
    )
    form_rendered_at: datetime | None = Field(
        default=None,
        description=(
            "When the form was first displayed (ISO-8601 or UNIX epoch; epoch "
            "milliseconds are accepted). Omit when unknown."
        ),
    )


class RiskVerdictResponse(BaseModel):
    is_spam: bool
    score: int = Field(..., ge=0, le=100, description="Composite risk score, clamped to 0..100.")
    suspicious: bool = Field(
        ..., description="Admitted but scored in the flagged band; logged for operators."
    )


class ScreenSubmissionResponse(BaseModel):
    """Decision for an admitted submission."""

    admitted: bool
    rate_limited: bool
    remaining: float | None = Field(
        default=None, description="Submissions left in the client's budget (fractional)."
    )
    verdict: RiskVerdictResponse | None = None

    @classmethod
    def from_decision(cls, decision: GateDecision, *, suspicious: bool) -> "ScreenSubmissionResponse":
        verdict = None
        if decision.verdict is not None:
            verdict = RiskVerdictResponse(
                is_spam=decision.verdict.is_spam,
                score=decision.verdict.score,
                suspicious=suspicious,
            )
        return cls(
            admitted=decision.admitted,
            rate_limited=decision.rate_limited,
            remaining=decision.remaining,
            verdict=verdict,
        )
