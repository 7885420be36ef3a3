"""ReductionScheduler — periodic trigger for BatchRunner.run_cycle.

Started from the FastAPI lifespan when SCHEDULER_ENABLED is set. A cycle still
running when the next tick fires is skipped, not queued.
"""

import asyncio
import contextlib
import logging

from src.pr_common.datetime_utils import utc_now
from src.pr_common.errors import CycleAbortedError, CycleInProgressError
from src.pr_engine.outcomes import CycleSummary
from src.pr_engine.runner import BatchRunner

logger = logging.getLogger(__name__)


class ReductionScheduler:
    def __init__(self, runner: BatchRunner, interval_seconds: float) -> None:
        self._runner = runner
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="price-reduction-scheduler")
        logger.info("Price-reduction scheduler started (every %.0fs)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Price-reduction scheduler stopped")

    async def run_once(self) -> CycleSummary | None:
        """One tick. Returns None when the cycle was skipped or aborted."""
        try:
            return await self._runner.run_cycle(utc_now())
        except CycleInProgressError:
            logger.info("Previous cycle still running, skipping this tick")
        except CycleAbortedError as e:
            logger.error("%s; will retry next tick", e.message)
        return None

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Unexpected error in price-reduction scheduler tick")
            await asyncio.sleep(self._interval)
