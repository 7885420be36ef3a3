"""Cycle-summary sinks.

A sink receives the finished CycleSummary. Sinks are reporting only: the runner
logs and swallows sink failures so a broken sink never fails a cycle.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import redis.asyncio as aioredis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.pr_common.enums import NotificationType
from src.pr_common.money import price_to_display
from src.pr_common.redis_client import get_redis
from src.pr_engine.outcomes import CycleSummary

logger = logging.getLogger(__name__)


class CycleSummarySink(Protocol):
    async def publish(self, summary: CycleSummary) -> None: ...


class LoggingSummarySink:
    async def publish(self, summary: CycleSummary) -> None:
        counts = summary.counts
        logger.info(
            "Cycle %s%s finished: processed=%d reduced=%d skipped=%d failed=%d (%.1fs)",
            summary.cycle_id,
            " [dry-run]" if summary.dry_run else "",
            len(summary.items),
            counts["Reduced"],
            counts["Skipped"],
            counts["Failed"],
            (summary.finished_at - summary.started_at).total_seconds(),
        )
        for item in summary.failed:
            logger.warning("Cycle %s: listing %s failed: %s",
                           summary.cycle_id, item.listing_id, item.reason)


class RedisSummarySink:
    """Keeps the latest summary under one key for the admin endpoint."""

    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        key: str = settings.LAST_CYCLE_SUMMARY_KEY,
    ) -> None:
        self._redis_factory = redis_factory
        self._key = key

    async def publish(self, summary: CycleSummary) -> None:
        redis = await self._redis_factory()
        await redis.set(self._key, json.dumps(summary.to_dict()))

    async def get_last_summary(self) -> dict[str, Any] | None:
        redis = await self._redis_factory()
        raw = await redis.get(self._key)
        return json.loads(raw) if raw else None


_LISTING_OWNER_SQL = text("SELECT user_id, title FROM listings WHERE id = :listing_id")

_INSERT_NOTIFICATION_SQL = text("""
    INSERT INTO notifications (user_id, type, title, message, data)
    VALUES (:user_id, :type, :title, :message, CAST(:data AS JSONB))
""")


class NotificationSummarySink:
    """One "Price Reduced" notification per committed reduction; dry runs notify nobody."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def publish(self, summary: CycleSummary) -> None:
        if summary.dry_run or not summary.reduced:
            return
        async with self._session_factory() as db:
            for item in summary.reduced:
                owner = (
                    await db.execute(_LISTING_OWNER_SQL, {"listing_id": item.listing_id})
                ).fetchone()
                if owner is None:
                    continue
                await db.execute(
                    _INSERT_NOTIFICATION_SQL,
                    {
                        "user_id": owner.user_id,
                        "type": NotificationType.PRICE_REDUCTION.value,
                        "title": "Price Reduced",
                        "message": (
                            f'Price for "{owner.title}" reduced from '
                            f"{price_to_display(item.old_price)} to "
                            f"{price_to_display(item.new_price)}. Reason: {item.reason}"
                        ),
                        "data": json.dumps({
                            "listing_id": item.listing_id,
                            "old_price": str(item.old_price),
                            "new_price": str(item.new_price),
                            "reason": item.reason,
                            "cycle_id": summary.cycle_id,
                        }),
                    },
                )
            await db.commit()
        logger.debug("Cycle %s: %d notifications written",
                     summary.cycle_id, len(summary.reduced))
