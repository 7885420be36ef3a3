"""HistoryLedger Protocol — write-only for the engine, read-only for display."""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pr_history.domain.models import PriceHistoryEntry


class HistoryRepositoryProtocol(Protocol):
    async def append(
        self,
        db: AsyncSession,
        listing_id: str,
        price: Decimal,
        reason: str,
        created_at: datetime,
        previous_price: Decimal | None = None,
        strategy: str | None = None,
        cycle_id: str | None = None,
    ) -> PriceHistoryEntry: ...

    async def read_for_listing(
        self,
        db: AsyncSession,
        listing_id: str,
        cursor_id: int | None,
        limit: int,
    ) -> list[PriceHistoryEntry]: ...

    async def has_entries(self, db: AsyncSession, listing_id: str) -> bool: ...
