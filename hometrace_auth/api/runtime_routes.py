"""Health endpoint and application lifecycle hooks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from fastapi import FastAPI

from hometrace_auth.api.contracts import HealthResponse
from hometrace_auth.ratelimit import RateLimitSweeper


@dataclass(frozen=True)
class RuntimeRouteDeps:
    """Dependencies required to mount runtime routes."""

    sweeper: RateLimitSweeper
    on_shutdown: Callable[[], None]


def register_runtime_routes(app: FastAPI, *, deps: RuntimeRouteDeps) -> None:
    """Register health endpoint and start/stop the rate-limit sweeper."""

    @app.on_event("startup")
    async def startup_rate_limit_sweeper() -> None:
        await deps.sweeper.start()

    @app.on_event("shutdown")
    async def shutdown_rate_limit_sweeper() -> None:
        await deps.sweeper.stop()
        deps.on_shutdown()

    @app.get(
        "/api/health",
        response_model=HealthResponse,
    )
    def health() -> HealthResponse:
        return HealthResponse(status="ok")
