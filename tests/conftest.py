"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins APP_ENV to "testing" so no developer .env file leaks into the
settings used by the suite.
"""

import os
from datetime import datetime, timedelta, timezone

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest

from formguard.services.verdicts import Submission


class FakeClock:
    """Deterministic monotonic clock for rate limiter tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_submission():
    """Build a Submission whose form was open for ``elapsed`` seconds."""

    def _make(fields: dict | None = None, elapsed: float | None = 30.0) -> Submission:
        submitted_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        rendered_at = None if elapsed is None else submitted_at - timedelta(seconds=elapsed)
        return Submission(
            fields=fields or {},
            form_rendered_at=rendered_at,
            form_submitted_at=submitted_at,
        )

    return _make
