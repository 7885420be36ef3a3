"""MarketSnapshotRepository — DB-backed MarketDataProviderProtocol.

Reads the latest market_snapshots row for a listing. The table is filled by an
external collector; this module never writes to it.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pr_listing.domain.models import MarketSnapshot

_LATEST_SNAPSHOT_SQL = text("""
    SELECT listing_id, average_price, suggested_price, sample_size, captured_at
    FROM market_snapshots
    WHERE listing_id = :listing_id
    ORDER BY captured_at DESC, id DESC
    LIMIT 1
""")


def _row_to_snapshot(row: Any) -> MarketSnapshot:
    return MarketSnapshot(
        listing_id=row.listing_id,
        average_price=row.average_price,
        suggested_price=row.suggested_price,
        sample_size=row.sample_size,
        captured_at=row.captured_at,
    )


class MarketSnapshotRepository:
    async def get_snapshot(
        self, db: AsyncSession, listing_id: str
    ) -> MarketSnapshot | None:
        result = await db.execute(_LATEST_SNAPSHOT_SQL, {"listing_id": listing_id})
        row = result.fetchone()
        return _row_to_snapshot(row) if row else None
