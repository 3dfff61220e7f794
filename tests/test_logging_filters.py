"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from formguard.core.logging import (
    REDACTED,
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    redact,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired through the production filters and formatter."""

    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    logger.handlers.clear()

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()
    clear_request_id()


def test_submission_content_is_redacted(capture):
    logger, stream = capture

    logger.info(
        "abuse_gate.rejected",
        extra={
            "email": "anna@example.org",
            "fields": {"nachricht": "Hallo, ich komme mit."},
            "client_ip": "203.0.113.5",
            "score": 95,
        },
    )

    output = stream.getvalue()
    assert "anna@example.org" not in output
    assert "Hallo" not in output
    assert "203.0.113.5" not in output
    assert REDACTED in output
    assert json.loads(output)["score"] == 95


def test_safe_fields_pass_through(capture):
    logger, stream = capture
    set_request_id("req-123")

    logger.info(
        "abuse_gate.admitted",
        extra={"key_hash": "ab12cd34ef56ab78", "reasons": ["too many links"], "remaining": 3.5},
    )

    record = json.loads(stream.getvalue())
    assert record["message"] == "abuse_gate.admitted"
    assert record["request_id"] == "req-123"
    assert record["key_hash"] == "ab12cd34ef56ab78"
    assert record["reasons"] == ["too many links"]
    assert REDACTED not in stream.getvalue()


def test_nested_proxy_headers_are_redacted(capture):
    logger, stream = capture

    logger.info(
        "request_headers",
        extra={
            "headers": {
                "X-Forwarded-For": "203.0.113.5, 10.0.0.1",
                "user-agent": "pytest",
            },
        },
    )

    output = stream.getvalue()
    assert "203.0.113.5" not in output
    assert "pytest" in output


def test_redact_handles_lists_and_case():
    data = {"items": [{"Password": "hunter2"}, {"count": 2}], "Cookie": "sid=1"}

    cleaned = redact(data)

    assert cleaned == {"items": [{"Password": REDACTED}, {"count": 2}], "Cookie": REDACTED}
    assert data["Cookie"] == "sid=1"
