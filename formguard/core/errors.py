"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    retry_after: int


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when a request cannot be screened as submitted."""


class SpamRejectedAppError(AppError):
    """Raised when a submission is judged to be automated abuse.

    The message is deliberately generic; detector reasons are logged only.
    """


@dataclass
class RateLimitedAppError(AppError):
    """Raised when a client has exhausted its submission budget.

    Attributes:
        headers: Rate limit response headers (Retry-After, X-RateLimit-*).
    """

    headers: dict[str, str] | None = None
