"""Per-action request throttling."""

from hometrace_auth.ratelimit.limiter import (
    InMemoryRateLimiter,
    RateLimitPolicy,
    RateLimitResult,
    RateLimitStore,
    build_identifier,
    enforce_rate_limit,
    rate_limit_headers,
)
from hometrace_auth.ratelimit.sweeper import RateLimitSweeper

__all__ = [
    "InMemoryRateLimiter",
    "RateLimitPolicy",
    "RateLimitResult",
    "RateLimitStore",
    "RateLimitSweeper",
    "build_identifier",
    "enforce_rate_limit",
    "rate_limit_headers",
]
