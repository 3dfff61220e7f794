"""Tests for translating gate decisions into HTTP errors."""

import pytest
from starlette.requests import Request

from formguard.core.config import GuardSettings
from formguard.core.errors import RateLimitedAppError, ValidationAppError
from formguard.core.guard import build_abuse_gate, enforce_abuse_gate

FIELDS = {"vorname": "Anna", "email": "anna@example.org"}


def _request(client: tuple[str, int] | None) -> Request:
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/v1/submissions/screen",
            "headers": [],
            "client": client,
        }
    )


def test_unidentified_client_rejected_in_strict_mode() -> None:
    guard = GuardSettings(strict_client_id=True)
    gate = build_abuse_gate(guard)

    with pytest.raises(ValidationAppError) as exc_info:
        enforce_abuse_gate(_request(None), gate, FIELDS, None, guard=guard)

    assert exc_info.value.code == "client_unidentified"
    assert gate.rate_limiter.stats()["entries"] == 0


def test_unidentified_clients_share_one_budget_by_default() -> None:
    guard = GuardSettings(rate_limit_capacity=2, strict_client_id=False)
    gate = build_abuse_gate(guard)

    for _ in range(2):
        enforce_abuse_gate(_request(None), gate, FIELDS, None, guard=guard)

    with pytest.raises(RateLimitedAppError):
        enforce_abuse_gate(_request(None), gate, FIELDS, None, guard=guard)


def test_identified_client_unaffected_by_strict_mode() -> None:
    guard = GuardSettings(strict_client_id=True)
    gate = build_abuse_gate(guard)

    decision = enforce_abuse_gate(_request(("198.51.100.4", 443)), gate, FIELDS, None, guard=guard)

    assert decision.admitted is True
