"""Rate limiting adapters.

This package provides a small abstraction layer so the service can start with
an in-memory token bucket and later migrate to Redis or another shared store
without changing the abuse gate.
"""

from formguard.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from formguard.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter

__all__ = ["AbstractRateLimiter", "InMemoryTokenBucketRateLimiter", "RateLimitResult"]
