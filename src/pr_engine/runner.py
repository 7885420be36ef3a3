"""BatchRunner — one price-reduction cycle.

  lock -> select due ids once -> dedupe -> bounded parallel execute -> summary -> sinks

Each listing runs in its own session, so one listing's failure or timeout never
touches another's transaction. A listing that times out keeps its old
next_price_reduction (it only advances on commit) and is picked up next cycle.
"""

import asyncio
import logging
import uuid
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.pr_common.database import async_session_factory
from src.pr_common.datetime_utils import utc_now
from src.pr_common.errors import CycleAbortedError
from src.pr_engine.cycle_lock import CycleLock
from src.pr_engine.eligibility import EligibilitySelector
from src.pr_engine.executor import ReductionExecutor
from src.pr_engine.outcomes import CycleSummary, Failed, ReductionOutcome
from src.pr_engine.summary import (
    CycleSummarySink,
    LoggingSummarySink,
    NotificationSummarySink,
    RedisSummarySink,
)

logger = logging.getLogger(__name__)


def new_cycle_id() -> str:
    return f"cyc_{uuid.uuid4().hex[:12]}"


class BatchRunner:
    def __init__(
        self,
        selector: EligibilitySelector,
        executor: ReductionExecutor,
        session_factory: async_sessionmaker[AsyncSession],
        sinks: list[CycleSummarySink],
        lock: CycleLock,
        max_workers: int = settings.REDUCTION_MAX_WORKERS,
        listing_timeout_seconds: float = settings.REDUCTION_LISTING_TIMEOUT_SECONDS,
    ) -> None:
        self._selector = selector
        self._executor = executor
        self._session_factory = session_factory
        self._sinks = sinks
        self._lock = lock
        self._max_workers = max_workers
        self._timeout = listing_timeout_seconds

    @property
    def is_running(self) -> bool:
        return self._lock.locked

    async def run_cycle(
        self, now: datetime, dry_run: bool = False, limit: int | None = None
    ) -> CycleSummary:
        """Run one cycle at `now`. Raises CycleInProgressError / CycleAbortedError."""
        async with self._lock.hold():
            cycle_id = new_cycle_id()
            started_at = utc_now()
            logger.info(
                "Cycle %s started (now=%s, dry_run=%s, limit=%s)",
                cycle_id, now.isoformat(), dry_run, limit,
            )

            try:
                async with self._session_factory() as db:
                    ids = await self._selector.select_due(db, now, limit)
            except (SQLAlchemyError, OSError) as e:
                logger.error("Cycle %s aborted: eligibility query failed: %s", cycle_id, e)
                raise CycleAbortedError(f"eligibility query failed: {e}") from e

            # Order-preserving dedupe; each id is processed at most once per cycle
            ids = list(dict.fromkeys(ids))

            semaphore = asyncio.Semaphore(self._max_workers)

            async def _run_safe(listing_id: str) -> ReductionOutcome:
                async with semaphore:
                    return await self._run_one(listing_id, now, dry_run, cycle_id)

            outcomes = list(await asyncio.gather(*(_run_safe(i) for i in ids)))

            summary = CycleSummary.build(
                cycle_id=cycle_id,
                now=now,
                started_at=started_at,
                finished_at=utc_now(),
                dry_run=dry_run,
                outcomes=outcomes,
            )

        await self._publish(summary)
        return summary

    async def _run_one(
        self, listing_id: str, now: datetime, dry_run: bool, cycle_id: str
    ) -> ReductionOutcome:
        try:
            async with self._session_factory() as db:
                return await asyncio.wait_for(
                    self._executor.execute(db, listing_id, now, dry_run, cycle_id),
                    timeout=self._timeout,
                )
        except asyncio.TimeoutError:
            logger.error("Cycle %s: listing %s timed out after %.1fs",
                         cycle_id, listing_id, self._timeout)
            if not dry_run:
                committed = await self._committed_before_timeout(listing_id, cycle_id)
                if committed is not None:
                    return committed
            return Failed(listing_id, f"timed out after {self._timeout:g}s")
        except Exception as e:
            logger.error("Cycle %s: listing %s failed: %s",
                         cycle_id, listing_id, e, exc_info=True)
            return Failed(listing_id, f"{e.__class__.__name__}: {e}")

    async def _committed_before_timeout(
        self, listing_id: str, cycle_id: str
    ) -> ReductionOutcome | None:
        # The timeout can land after commit; the history row is the record of it
        try:
            async with self._session_factory() as db:
                committed = await self._executor.committed_outcome(db, listing_id, cycle_id)
        except Exception as e:
            logger.error("Cycle %s: could not check listing %s after timeout: %s",
                         cycle_id, listing_id, e)
            return None
        if committed is not None:
            logger.warning("Cycle %s: listing %s committed before timing out",
                           cycle_id, listing_id)
        return committed

    async def _publish(self, summary: CycleSummary) -> None:
        for sink in self._sinks:
            try:
                await sink.publish(summary)
            except Exception as e:
                logger.error("Cycle %s: summary sink %s failed: %s",
                             summary.cycle_id, sink.__class__.__name__, e)


_runner: BatchRunner | None = None


def get_batch_runner() -> BatchRunner:
    global _runner  # noqa: PLW0603
    if _runner is None:
        _runner = BatchRunner(
            selector=EligibilitySelector(),
            executor=ReductionExecutor(),
            session_factory=async_session_factory,
            sinks=[
                LoggingSummarySink(),
                RedisSummarySink(),
                NotificationSummarySink(async_session_factory),
            ],
            lock=CycleLock(),
        )
    return _runner
