"""Reduction invariants.

check_listing_invariants   — in-transaction check after every committed price move
verify_reduction_invariants — store-wide report for the admin endpoint
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pr_history.domain.models import PriceHistoryEntry
from src.pr_listing.domain.models import Listing

logger = logging.getLogger(__name__)

_FLOOR_VIOLATIONS_SQL = text("""
    SELECT id, current_price, minimum_price
    FROM listings
    WHERE reduction_enabled = TRUE
      AND current_price < minimum_price
    ORDER BY id
""")

# Latest history row per listing via LATERAL; only listings that were ever reduced
_HISTORY_MISMATCH_SQL = text("""
    SELECT l.id, l.current_price, h.price AS history_price
    FROM listings l
    LEFT JOIN LATERAL (
        SELECT price
        FROM price_history
        WHERE listing_id = l.id
        ORDER BY id DESC
        LIMIT 1
    ) h ON TRUE
    WHERE l.reduction_enabled = TRUE
      AND l.last_price_reduction IS NOT NULL
      AND (h.price IS NULL OR h.price <> l.current_price)
    ORDER BY l.id
""")

_STALE_SCHEDULE_SQL = text("""
    SELECT COUNT(*)
    FROM listings
    WHERE reduction_enabled = TRUE
      AND listing_status = 'Active'
      AND reduction_stalled = FALSE
      AND current_price > minimum_price
      AND next_price_reduction < :stale_before
""")


def check_listing_invariants(listing: Listing, entry: PriceHistoryEntry) -> None:
    """Raises AssertionError if a just-written price breaks the floor or the ledger."""
    assert listing.current_price >= listing.minimum_price, (
        f"floor violated: listing={listing.id} current={listing.current_price} "
        f"< minimum={listing.minimum_price}"
    )
    assert entry.listing_id == listing.id and entry.price == listing.current_price, (
        f"history mismatch: listing={listing.id} current={listing.current_price} "
        f"!= latest history price={entry.price}"
    )


async def verify_reduction_invariants(
    db: AsyncSession, now: datetime, cycle_interval_seconds: int
) -> dict[str, Any]:
    """Report floor and history violations; stale schedules are counted, not violations."""
    violations: list[str] = []

    for row in (await db.execute(_FLOOR_VIOLATIONS_SQL)).fetchall():
        msg = (
            f"floor violated: listing={row.id} current={row.current_price} "
            f"< minimum={row.minimum_price}"
        )
        violations.append(msg)
        logger.error(msg)

    for row in (await db.execute(_HISTORY_MISMATCH_SQL)).fetchall():
        msg = (
            f"history mismatch: listing={row.id} current={row.current_price} "
            f"!= latest history price={row.history_price}"
        )
        violations.append(msg)
        logger.error(msg)

    stale_before = now - timedelta(seconds=cycle_interval_seconds)
    stale = (await db.execute(_STALE_SCHEDULE_SQL, {"stale_before": stale_before})).scalar_one()
    if stale:
        logger.warning("%d listings overdue by more than one cycle", stale)

    return {"ok": not violations, "violations": violations, "stale_schedules": int(stale)}
