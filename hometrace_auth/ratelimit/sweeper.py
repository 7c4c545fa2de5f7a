"""Background eviction of elapsed rate-limit windows."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Protocol

LOGGER = logging.getLogger(__name__)


class SweepableStore(Protocol):
    def sweep(self) -> int: ...


class RateLimitSweeper:
    """Periodically sweeps a limiter; owns its asyncio task handle."""

    def __init__(self, store: SweepableStore, *, interval_seconds: float) -> None:
        self._store = store
        self._interval_seconds = max(0.01, float(interval_seconds))
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start sweep loop if not already running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            evicted = self._store.sweep()
            if evicted:
                LOGGER.debug("rate_limit_sweep", extra={"count": evicted})
