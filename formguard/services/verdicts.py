"""Value types flowing through the abuse gate.

Everything here is immutable: detectors receive a read-only Submission and
return SignalResults, the fusion policy turns those into a RiskVerdict, and the
gate wraps the verdict in a GateDecision for the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class Submission:
    """A raw form payload plus optional timing metadata.

    Attributes:
        fields: Field name to value mapping, in submission order.
        form_rendered_at: When the form was first shown to the end user.
        form_submitted_at: When this submission was received.
    """

    fields: Mapping[str, Any] = field(default_factory=dict)
    form_rendered_at: datetime | None = None
    form_submitted_at: datetime | None = None

    def __post_init__(self) -> None:
        # Snapshot into a read-only view so detectors cannot mutate the caller's dict.
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)


@dataclass(frozen=True)
class SignalResult:
    """Output of a single detector.

    Attributes:
        detector: Name of the detector that produced the result.
        triggered: Whether this signal alone disqualifies the submission.
        score: Non-negative contribution to the composite score (uncapped).
        reasons: Individual findings; empty when not informative.
    """

    detector: str
    triggered: bool = False
    score: int = 0
    reasons: tuple[str, ...] = ()

    @property
    def reason(self) -> str:
        return ", ".join(self.reasons)


@dataclass(frozen=True)
class RiskVerdict:
    """Fused outcome of all detectors for one submission."""

    is_spam: bool
    score: int
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class GateDecision:
    """Admission decision returned by the abuse gate.

    ``rate_limited`` implies ``admitted`` is False and ``verdict`` is None,
    since rate limiting short-circuits before any scoring. ``remaining`` is
    None when the gate runs without a rate limiter.
    """

    admitted: bool
    rate_limited: bool
    verdict: RiskVerdict | None = None
    remaining: float | None = None
    retry_after_seconds: int | None = None
