"""Request gatekeeper: route classification, admission and middleware."""

from hometrace_auth.gatekeeper.decision import GateDecision, GateOutcome, GateReason, Gatekeeper
from hometrace_auth.gatekeeper.middleware import IDENTITY_HEADERS, create_gatekeeper_middleware
from hometrace_auth.gatekeeper.routes import (
    PUBLIC_API_ROUTES,
    PUBLIC_PAGE_ROUTES,
    ROLE_PREFIXES,
    RateLimitedRoute,
    RoutePolicy,
    matches_route,
)

__all__ = [
    "GateDecision",
    "GateOutcome",
    "GateReason",
    "Gatekeeper",
    "IDENTITY_HEADERS",
    "PUBLIC_API_ROUTES",
    "PUBLIC_PAGE_ROUTES",
    "ROLE_PREFIXES",
    "RateLimitedRoute",
    "RoutePolicy",
    "create_gatekeeper_middleware",
    "matches_route",
]
