"""Route classification for the request gatekeeper."""

from __future__ import annotations

from dataclasses import dataclass, field

PUBLIC_PAGE_ROUTES = (
    "/",
    "/sign-in",
    "/sign-up",
    "/sign-up/buyer",
    "/sign-up/realtor",
    "/reset-password",
    "/invite",
    "/accept-invite",
)

PUBLIC_API_ROUTES = (
    "/api/health",
    "/api/auth/register",
    "/api/auth/login",
    "/api/auth/forgot-password",
    "/api/auth/reset-password",
    "/api/auth/refresh",
    "/api/auth/logout",
    "/api/invites/validate",
    "/api/invites/accept",
)

ROLE_PREFIXES = {
    "BUYER": "/client",
    "REALTOR": "/realtor",
    "ADMIN": "/admin",
}


def matches_route(path: str, route: str) -> bool:
    """Exact match or prefix match on whole path segments; ``/`` is exact only."""
    if route == "/":
        return path == "/"
    route = route.rstrip("/")
    return path == route or path.startswith(route + "/")


@dataclass(frozen=True)
class RateLimitedRoute:
    """API route whose requests count against a limiter action."""

    method: str
    prefix: str
    action: str


@dataclass(frozen=True)
class RoutePolicy:
    """Which paths are public, which role owns which area, where users land."""

    public_pages: tuple[str, ...] = PUBLIC_PAGE_ROUTES
    public_api: tuple[str, ...] = PUBLIC_API_ROUTES
    auth_entry_pages: tuple[str, ...] = ("/sign-in", "/sign-up")
    role_prefixes: dict[str, str] = field(default_factory=lambda: dict(ROLE_PREFIXES))
    default_landing: str = "/client"
    sign_in_path: str = "/sign-in"
    api_prefix: str = "/api"
    static_prefixes: tuple[str, ...] = ("/static", "/_next")
    rate_limited: tuple[RateLimitedRoute, ...] = (
        RateLimitedRoute(method="POST", prefix="/api/invites", action="invites"),
    )

    def is_static(self, path: str) -> bool:
        # API paths may legitimately contain dots (emails, file names).
        if self.is_api(path):
            return False
        if any(matches_route(path, prefix) for prefix in self.static_prefixes):
            return True
        last_segment = path.rsplit("/", 1)[-1]
        return "." in last_segment

    def is_api(self, path: str) -> bool:
        return matches_route(path, self.api_prefix)

    def is_public_page(self, path: str) -> bool:
        return any(matches_route(path, route) for route in self.public_pages)

    def is_public_api(self, path: str) -> bool:
        return any(matches_route(path, route) for route in self.public_api)

    def is_auth_entry(self, path: str) -> bool:
        return any(matches_route(path, route) for route in self.auth_entry_pages)

    def owner_of(self, path: str) -> str | None:
        """Role owning the restricted area ``path`` falls in, if any."""
        for role, prefix in self.role_prefixes.items():
            if matches_route(path, prefix):
                return role
        return None

    def landing_for(self, role: str) -> str:
        return self.role_prefixes.get(role, self.default_landing)

    def rate_limit_action(self, method: str, path: str) -> str | None:
        for route in self.rate_limited:
            if route.method == method.upper() and matches_route(path, route.prefix):
                return route.action
        return None
