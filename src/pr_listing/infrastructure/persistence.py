"""ListingRepository — concrete implementation of ListingRepositoryProtocol.

All listing mutations are single atomic PostgreSQL UPDATE ... RETURNING statements
guarded by the expected `version` (optimistic concurrency). A result of 0 rows
means the precondition no longer holds; the caller decides what that means.

Transaction ownership: The CALLER (executor or application service) commits or
rolls back. Nothing here calls commit().
asyncpg NULL/typed parameter pattern: CAST(:param AS TYPE) where types are ambiguous.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pr_listing.domain.models import Listing, PriceUpdate, ReductionSettings

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, user_id, title,
    current_price, original_price, minimum_price,
    reduction_enabled, reduction_strategy, reduction_percentage, reduction_amount,
    reduction_interval_days, last_price_reduction, next_price_reduction,
    reduction_stalled, listing_status, version, created_at, updated_at
"""

# Eligibility predicate, the one place it is written in SQL.
ELIGIBLE_PREDICATE = """
    reduction_enabled = TRUE
    AND listing_status = 'Active'
    AND current_price > minimum_price
    AND reduction_stalled = FALSE
    AND (next_price_reduction IS NULL OR next_price_reduction <= :now)
"""

_GET_LISTING_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM listings
    WHERE id = :listing_id
""")

_QUERY_ELIGIBLE_SQL = text(f"""
    SELECT id
    FROM listings
    WHERE {ELIGIBLE_PREDICATE}
    ORDER BY next_price_reduction ASC NULLS FIRST, id ASC
    LIMIT CAST(:limit AS INTEGER)
""")

_COMPARE_AND_UPDATE_SQL = text(f"""
    UPDATE listings
    SET current_price = :new_price,
        last_price_reduction = :last_price_reduction,
        next_price_reduction = :next_price_reduction,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :listing_id
      AND version = :expected_version
      AND current_price = :expected_price
      AND listing_status = 'Active'
      AND CAST(:new_price AS NUMERIC) >= minimum_price
      AND CAST(:new_price AS NUMERIC) < current_price
      AND (
          CAST(:require_due AS BOOLEAN) = FALSE
          OR ({ELIGIBLE_PREDICATE})
      )
    RETURNING {_COLUMNS}
""")

_MARK_STALLED_SQL = text("""
    UPDATE listings
    SET reduction_stalled = TRUE,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :listing_id AND version = :expected_version
    RETURNING id
""")

_UPDATE_SETTINGS_SQL = text(f"""
    UPDATE listings
    SET minimum_price = :minimum_price,
        reduction_strategy = :reduction_strategy,
        reduction_percentage = :reduction_percentage,
        reduction_amount = :reduction_amount,
        reduction_interval_days = :reduction_interval_days,
        reduction_stalled = FALSE,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :listing_id
      AND version = :expected_version
      AND current_price >= :minimum_price
    RETURNING {_COLUMNS}
""")

_SET_ENABLED_SQL = text(f"""
    UPDATE listings
    SET reduction_enabled = :enabled,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :listing_id
    RETURNING {_COLUMNS}
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_listing(row: Any) -> Listing:
    return Listing(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        current_price=row.current_price,
        original_price=row.original_price,
        minimum_price=row.minimum_price,
        reduction_enabled=row.reduction_enabled,
        reduction_strategy=row.reduction_strategy,
        reduction_percentage=row.reduction_percentage,
        reduction_amount=row.reduction_amount,
        reduction_interval_days=row.reduction_interval_days,
        last_price_reduction=row.last_price_reduction,
        next_price_reduction=row.next_price_reduction,
        reduction_stalled=row.reduction_stalled,
        listing_status=row.listing_status,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ListingRepository:
    """Concrete repository — every write is one guarded UPDATE ... RETURNING."""

    async def get_listing(self, db: AsyncSession, listing_id: str) -> Listing | None:
        result = await db.execute(_GET_LISTING_SQL, {"listing_id": listing_id})
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def query_eligible(
        self, db: AsyncSession, now: datetime, limit: int | None
    ) -> list[str]:
        # LIMIT NULL means no limit in PostgreSQL
        result = await db.execute(_QUERY_ELIGIBLE_SQL, {"now": now, "limit": limit})
        return [row.id for row in result.fetchall()]

    async def compare_and_update(
        self,
        db: AsyncSession,
        listing_id: str,
        expected_version: int,
        expected_price: Decimal,
        update: PriceUpdate,
        require_due: bool,
    ) -> Listing | None:
        result = await db.execute(
            _COMPARE_AND_UPDATE_SQL,
            {
                "listing_id": listing_id,
                "expected_version": expected_version,
                "expected_price": expected_price,
                "new_price": update.new_price,
                "last_price_reduction": update.last_price_reduction,
                "next_price_reduction": update.next_price_reduction,
                "now": update.last_price_reduction,
                "require_due": require_due,
            },
        )
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def mark_stalled(
        self, db: AsyncSession, listing_id: str, expected_version: int
    ) -> bool:
        result = await db.execute(
            _MARK_STALLED_SQL,
            {"listing_id": listing_id, "expected_version": expected_version},
        )
        return result.fetchone() is not None

    async def update_settings(
        self,
        db: AsyncSession,
        listing_id: str,
        expected_version: int,
        new_settings: ReductionSettings,
    ) -> Listing | None:
        result = await db.execute(
            _UPDATE_SETTINGS_SQL,
            {
                "listing_id": listing_id,
                "expected_version": expected_version,
                "minimum_price": new_settings.minimum_price,
                "reduction_strategy": new_settings.reduction_strategy,
                "reduction_percentage": new_settings.reduction_percentage,
                "reduction_amount": new_settings.reduction_amount,
                "reduction_interval_days": new_settings.reduction_interval_days,
            },
        )
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def set_enabled(
        self, db: AsyncSession, listing_id: str, enabled: bool
    ) -> Listing | None:
        result = await db.execute(
            _SET_ENABLED_SQL, {"listing_id": listing_id, "enabled": enabled}
        )
        row = result.fetchone()
        return _row_to_listing(row) if row else None
