"""Admin application service — manual cycle trigger and reporting."""
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pr_engine.invariants import verify_reduction_invariants
from src.pr_engine.runner import BatchRunner, get_batch_runner
from src.pr_engine.summary import RedisSummarySink

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(
        self,
        runner_factory: Callable[[], BatchRunner] = get_batch_runner,
        summary_store: RedisSummarySink | None = None,
    ) -> None:
        self._runner_factory = runner_factory
        self._summary_store = summary_store or RedisSummarySink()

    async def trigger_cycle(
        self, now: datetime, dry_run: bool, limit: int | None
    ) -> dict[str, Any]:
        """Run one cycle synchronously. CycleInProgressError surfaces as 409."""
        logger.info("Manual price-reduction trigger (dry_run=%s, limit=%s)", dry_run, limit)
        summary = await self._runner_factory().run_cycle(now, dry_run=dry_run, limit=limit)
        return summary.to_dict()

    async def last_cycle(self) -> dict[str, Any] | None:
        return await self._summary_store.get_last_summary()

    async def verify_invariants(self, db: AsyncSession, now: datetime) -> dict[str, Any]:
        return await verify_reduction_invariants(
            db, now, settings.REDUCTION_CYCLE_INTERVAL_SECONDS
        )
