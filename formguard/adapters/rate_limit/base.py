"""Rate limiter interfaces.

The abuse gate depends on this abstraction (not the concrete implementation)
so the storage backend can be swapped later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a token bucket consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        capacity: Maximum tokens a client can hold.
        remaining: Tokens left after this call (fractional, never negative).
        retry_after_seconds: Seconds until one token is available when blocked.
    """

    allowed: bool
    capacity: int
    remaining: float
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for per-client rate limiters."""

    @property
    @abstractmethod
    def capacity(self) -> int:
        """Maximum tokens a single client can hold."""
        raise NotImplementedError

    @abstractmethod
    def try_consume(self, key: str) -> RateLimitResult:
        """Consume one token from the budget of a given key.

        Args:
            key: Client identifier (e.g., IP address).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now: float | None = None) -> int:
        """Drop stale budgets from the registry.

        Args:
            now: Clock reading to sweep against (defaults to the limiter clock).

        Returns:
            Number of budgets removed.
        """
        raise NotImplementedError
