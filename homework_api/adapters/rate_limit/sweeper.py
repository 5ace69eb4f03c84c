"""Background expiry sweep for in-memory limiters.

Runs as an asyncio task next to the request handlers. It only deletes
expired records; admission never depends on it having run.
"""

from __future__ import annotations

import asyncio
import logging

from homework_api.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Periodically calls ``limiter.sweep()`` to bound memory use."""

    def __init__(self, limiter: AbstractRateLimiter, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.limiter = limiter
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> int:
        """Sweep immediately and return the number of removed records."""
        removed = self.limiter.sweep()
        if removed:
            logger.info("rate_limit.sweep", extra={"removed": removed})
        return removed

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.run_once()
            except Exception:
                logger.exception("rate_limit.sweep_failed")

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info("rate_limit.sweeper_started", extra={"interval_s": self.interval_seconds})

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("rate_limit.sweeper_stopped")
