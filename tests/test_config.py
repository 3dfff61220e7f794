"""Tests for settings parsing and detector construction from settings."""

import pytest
from pydantic import ValidationError

from formguard.core import config
from formguard.core.config import GuardSettings, parse_csv
from formguard.core.guard import build_abuse_gate
from formguard.services.detectors import (
    ContentHeuristicDetector,
    HoneypotDetector,
    TimingDetector,
    build_detectors,
)


def test_parse_csv_trims_and_drops_empty_entries() -> None:
    assert parse_csv(" website, fax ,,company ") == ("website", "fax", "company")
    assert parse_csv("") == ()
    assert parse_csv(None) == ()


def test_defaults_match_documented_policy() -> None:
    guard = GuardSettings()

    assert guard.rate_limit_capacity == 5
    assert guard.rate_limit_refill_interval_seconds == 3600
    assert parse_csv(guard.honeypot_fields) == ("website", "phone_number", "company", "fax")
    assert guard.block_threshold == 70
    assert guard.suspicious_threshold == 40


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GUARD_RATE_LIMIT_CAPACITY", "12")
    monkeypatch.setenv("GUARD_HONEYPOT_FIELDS", "url,homepage")
    monkeypatch.setenv("GUARD_SPAM_PATTERNS", '["\\\\bbitcoin\\\\b"]')
    monkeypatch.setenv("GUARD_RATE_LIMIT_SWEEP_MODE", "clear")

    guard = GuardSettings()

    assert guard.rate_limit_capacity == 12
    assert parse_csv(guard.honeypot_fields) == ("url", "homepage")
    assert guard.spam_patterns == [r"\bbitcoin\b"]
    assert guard.rate_limit_sweep_mode == "clear"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"rate_limit_capacity": 0},
        {"rate_limit_refill_interval_seconds": 0},
        {"block_threshold": 101},
        {"rate_limit_sweep_mode": "weekly"},
    ],
)
def test_invalid_settings_rejected(kwargs: dict) -> None:
    with pytest.raises(ValidationError):
        GuardSettings(**kwargs)


def test_build_detectors_preserves_evaluation_order() -> None:
    detectors = build_detectors(GuardSettings(text_fields="body", email_field=""))

    assert [type(d) for d in detectors] == [HoneypotDetector, TimingDetector, ContentHeuristicDetector]
    content = detectors[2]
    assert content.config.text_fields == ("body",)
    assert content.config.email_field is None


def test_build_abuse_gate_from_settings() -> None:
    gate = build_abuse_gate(GuardSettings(rate_limit_capacity=2, block_threshold=60, suspicious_threshold=30))

    assert gate.rate_limiter is not None
    assert gate.rate_limiter.capacity == 2
    assert gate.policy.block_threshold == 60
    assert gate.policy.suspicious_threshold == 30


def test_build_abuse_gate_without_rate_limiting() -> None:
    gate = build_abuse_gate(GuardSettings(rate_limit_enabled=False))

    assert gate.rate_limiter is None


def test_strict_client_id_defaults_on_in_development(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GUARD_STRICT_CLIENT_ID", raising=False)

    monkeypatch.setattr(config, "APP_ENV", "development")
    assert GuardSettings().strict_client_id is True

    monkeypatch.setattr(config, "APP_ENV", "production")
    assert GuardSettings().strict_client_id is False


def test_strict_client_id_env_overrides_environment_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "APP_ENV", "development")
    monkeypatch.setenv("GUARD_STRICT_CLIENT_ID", "false")

    assert GuardSettings().strict_client_id is False


def test_proxy_headers_are_untrusted_by_default() -> None:
    assert GuardSettings().trust_proxy_headers is False
