"""In-memory fixed-window rate limiter keyed by ``action:identifier``.

Fixed windows tolerate a burst of up to twice the limit straddling a window
boundary. Counters live in process memory only; a horizontally scaled
deployment needs a shared counter implementing ``RateLimitStore``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Protocol

from hometrace_auth.api.errors import ApiError, ApiErrorCode
from hometrace_auth.core.config import RateLimitConfig

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    """Window length and request budget for one action."""

    window_ms: int
    limit: int


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single limiter check."""

    allowed: bool
    remaining: int
    limit: int
    reset_at: int
    count: int


@dataclass
class _WindowEntry:
    count: int
    reset_at: int


class RateLimitStore(Protocol):
    """Counter backend consumed by the gatekeeper and auth endpoints."""

    def check(self, action: str, identifier: str) -> RateLimitResult: ...

    def status(self, action: str, identifier: str) -> RateLimitResult: ...

    def reset(self, action: str, identifier: str) -> None: ...


def build_identifier(ip: str | None, user_id: str | None = None) -> str:
    """Compose limiter identifier from client IP and optional user id."""
    parts = [(ip or "").strip() or "unknown"]
    if user_id:
        parts.append(user_id)
    return ":".join(parts)


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Return ``X-RateLimit-*`` response headers for a check result."""
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at),
    }


def _now_ms() -> int:
    return int(time.time() * 1000)


class InMemoryRateLimiter:
    """Process-local fixed-window limiter with per-action policies."""

    def __init__(
        self,
        *,
        policies: dict[str, RateLimitPolicy] | None = None,
        default_policy: RateLimitPolicy = RateLimitPolicy(window_ms=60_000, limit=100),
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        """Initialize limiter table and policy parameters."""
        self._policies = dict(policies or {})
        self._default_policy = default_policy
        self._clock_ms = clock_ms
        self._entries: dict[str, _WindowEntry] = {}
        self._lock = Lock()

    @classmethod
    def from_config(cls, config: RateLimitConfig) -> "InMemoryRateLimiter":
        """Build limiter from rate limit configuration."""
        return cls(
            policies={
                action: RateLimitPolicy(window_ms=policy.window_ms, limit=policy.limit)
                for action, policy in config.policies.items()
            },
            default_policy=RateLimitPolicy(
                window_ms=config.default_policy.window_ms,
                limit=config.default_policy.limit,
            ),
        )

    def policy_for(self, action: str) -> RateLimitPolicy:
        return self._policies.get(action, self._default_policy)

    def check(self, action: str, identifier: str) -> RateLimitResult:
        """Count one request and report whether it fits the current window."""
        policy = self.policy_for(action)
        key = f"{action}:{identifier}"
        now = self._clock_ms()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now > entry.reset_at:
                entry = _WindowEntry(count=0, reset_at=now + policy.window_ms)
                self._entries[key] = entry
            entry.count += 1
            count = entry.count
            reset_at = entry.reset_at

        return RateLimitResult(
            allowed=count <= policy.limit,
            remaining=max(0, policy.limit - count),
            limit=policy.limit,
            reset_at=reset_at,
            count=count,
        )

    def status(self, action: str, identifier: str) -> RateLimitResult:
        """Report current window state without counting a request."""
        policy = self.policy_for(action)
        now = self._clock_ms()
        with self._lock:
            entry = self._entries.get(f"{action}:{identifier}")
            if entry is None or now > entry.reset_at:
                return RateLimitResult(
                    allowed=True,
                    remaining=policy.limit,
                    limit=policy.limit,
                    reset_at=now + policy.window_ms,
                    count=0,
                )
            count = entry.count
            reset_at = entry.reset_at

        return RateLimitResult(
            allowed=count <= policy.limit,
            remaining=max(0, policy.limit - count),
            limit=policy.limit,
            reset_at=reset_at,
            count=count,
        )

    def reset(self, action: str, identifier: str) -> None:
        """Forget the window for one key (admin override)."""
        with self._lock:
            self._entries.pop(f"{action}:{identifier}", None)

    def sweep(self) -> int:
        """Evict entries whose window has elapsed; return how many were removed."""
        now = self._clock_ms()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now > entry.reset_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def enforce_rate_limit(
    store: RateLimitStore, action: str, identifier: str
) -> RateLimitResult:
    """Count a request and raise 429 when the action budget is exhausted."""
    result = store.check(action, identifier)
    if not result.allowed:
        LOGGER.warning("rate_limit_exceeded", extra={"action": action})
        raise ApiError(
            error_code=ApiErrorCode.RATE_LIMIT_EXCEEDED,
            message="Too many requests. Please try again later.",
            headers=rate_limit_headers(result),
        )
    return result
