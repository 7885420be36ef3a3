"""HistoryLedger — append-only price_history table.

`append` runs inside the caller's transaction so a listing update and its
history row commit or roll back together. The table carries a trigger that
rejects UPDATE/DELETE (alembic 003).

created_at is forced strictly increasing per listing: the insert takes
GREATEST(:created_at, previous max + 1 microsecond).
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pr_common.errors import InternalError
from src.pr_history.domain.models import PriceHistoryEntry

_INSERT_HISTORY_SQL = text("""
    INSERT INTO price_history
        (listing_id, price, previous_price, reason, strategy, cycle_id, created_at)
    VALUES (
        :listing_id, :price, :previous_price, :reason, :strategy, :cycle_id,
        GREATEST(
            CAST(:created_at AS TIMESTAMPTZ),
            COALESCE(
                (SELECT MAX(created_at) + INTERVAL '1 microsecond'
                 FROM price_history WHERE listing_id = :listing_id),
                CAST(:created_at AS TIMESTAMPTZ)
            )
        )
    )
    RETURNING id, listing_id, price, previous_price, reason, strategy, cycle_id, created_at
""")

_LIST_HISTORY_SQL = text("""
    SELECT id, listing_id, price, previous_price, reason, strategy, cycle_id, created_at
    FROM price_history
    WHERE listing_id = :listing_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")

_HAS_ENTRIES_SQL = text("""
    SELECT EXISTS (SELECT 1 FROM price_history WHERE listing_id = :listing_id)
""")


def _row_to_entry(row: Any) -> PriceHistoryEntry:
    return PriceHistoryEntry(
        id=row.id,
        listing_id=row.listing_id,
        price=row.price,
        previous_price=row.previous_price,
        reason=row.reason,
        strategy=row.strategy,
        cycle_id=row.cycle_id,
        created_at=row.created_at,
    )


class HistoryLedger:
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
    ) -> PriceHistoryEntry:
        """Insert one row into price_history within the caller's transaction."""
        result = await db.execute(
            _INSERT_HISTORY_SQL,
            {
                "listing_id": listing_id,
                "price": price,
                "previous_price": previous_price,
                "reason": reason,
                "strategy": strategy,
                "cycle_id": cycle_id,
                "created_at": created_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("History insert returned no rows")
        return _row_to_entry(row)

    async def read_for_listing(
        self,
        db: AsyncSession,
        listing_id: str,
        cursor_id: int | None,
        limit: int,
    ) -> list[PriceHistoryEntry]:
        result = await db.execute(
            _LIST_HISTORY_SQL,
            {"listing_id": listing_id, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_entry(row) for row in result.fetchall()]

    async def has_entries(self, db: AsyncSession, listing_id: str) -> bool:
        result = await db.execute(_HAS_ENTRIES_SQL, {"listing_id": listing_id})
        return bool(result.scalar_one())
