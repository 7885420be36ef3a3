"""Unit tests for ListingRepository / MarketSnapshotRepository using a mock AsyncSession."""
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from src.pr_listing.domain.models import PriceUpdate, ReductionSettings
from src.pr_listing.infrastructure.market_data import MarketSnapshotRepository
from src.pr_listing.infrastructure.persistence import (
    ELIGIBLE_PREDICATE,
    ListingRepository,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _make_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "LST-1")
    row.user_id = kwargs.get("user_id", "user-1")
    row.title = kwargs.get("title", "Jacket")
    row.current_price = kwargs.get("current_price", Decimal("100.00"))
    row.original_price = kwargs.get("original_price", Decimal("100.00"))
    row.minimum_price = kwargs.get("minimum_price", Decimal("50.00"))
    row.reduction_enabled = kwargs.get("reduction_enabled", True)
    row.reduction_strategy = kwargs.get("reduction_strategy", "fixed_percentage")
    row.reduction_percentage = kwargs.get("reduction_percentage", Decimal("10.00"))
    row.reduction_amount = kwargs.get("reduction_amount", Decimal("0.00"))
    row.reduction_interval_days = kwargs.get("reduction_interval_days", 7)
    row.last_price_reduction = kwargs.get("last_price_reduction")
    row.next_price_reduction = kwargs.get("next_price_reduction")
    row.reduction_stalled = kwargs.get("reduction_stalled", False)
    row.listing_status = kwargs.get("listing_status", "Active")
    row.version = kwargs.get("version", 3)
    row.created_at = kwargs.get("created_at", NOW)
    row.updated_at = kwargs.get("updated_at", NOW)
    return row


def _db_returning(row: Any) -> AsyncMock:
    db = AsyncMock()
    result = MagicMock()
    result.fetchone.return_value = row
    db.execute.return_value = result
    return db


def _params(db: AsyncMock) -> dict[str, Any]:
    return db.execute.call_args.args[1]


def _sql(db: AsyncMock) -> str:
    return str(db.execute.call_args.args[0])


class TestListingRepository:
    async def test_get_listing_maps_row(self) -> None:
        db = _db_returning(_make_row(current_price=Decimal("81.00")))
        listing = await ListingRepository().get_listing(db, "LST-1")
        assert listing is not None
        assert listing.current_price == Decimal("81.00")
        assert listing.version == 3

    async def test_get_listing_missing(self) -> None:
        assert await ListingRepository().get_listing(_db_returning(None), "LST-X") is None

    async def test_query_eligible_passes_now_and_limit(self) -> None:
        db = AsyncMock()
        result = MagicMock()
        result.fetchall.return_value = [MagicMock(id="LST-1"), MagicMock(id="LST-2")]
        db.execute.return_value = result

        ids = await ListingRepository().query_eligible(db, NOW, None)

        assert ids == ["LST-1", "LST-2"]
        assert _params(db) == {"now": NOW, "limit": None}
        sql = _sql(db)
        assert "NULLS FIRST" in sql
        assert "current_price > minimum_price" in sql

    async def test_compare_and_update_guards(self) -> None:
        db = _db_returning(_make_row(current_price=Decimal("90.00"), version=4))
        update = PriceUpdate(Decimal("90.00"), NOW, NOW)

        listing = await ListingRepository().compare_and_update(
            db, "LST-1", 3, Decimal("100.00"), update, require_due=True
        )

        assert listing is not None and listing.version == 4
        params = _params(db)
        assert params["expected_version"] == 3
        assert params["expected_price"] == Decimal("100.00")
        assert params["now"] == NOW
        assert params["require_due"] is True
        sql = _sql(db)
        assert "version = :expected_version" in sql
        assert "current_price = :expected_price" in sql
        assert ELIGIBLE_PREDICATE.strip() in sql

    async def test_compare_and_update_stale_returns_none(self) -> None:
        update = PriceUpdate(Decimal("90.00"), NOW, NOW)
        result = await ListingRepository().compare_and_update(
            _db_returning(None), "LST-1", 3, Decimal("100.00"), update, require_due=False
        )
        assert result is None

    async def test_mark_stalled(self) -> None:
        assert await ListingRepository().mark_stalled(_db_returning(MagicMock()), "LST-1", 3)
        assert not await ListingRepository().mark_stalled(_db_returning(None), "LST-1", 3)

    async def test_update_settings_clears_stall(self) -> None:
        db = _db_returning(_make_row(minimum_price=Decimal("70.00")))
        cfg = ReductionSettings(Decimal("70.00"), "fixed_amount", Decimal("5"), Decimal("3"), 3)

        listing = await ListingRepository().update_settings(db, "LST-1", 3, cfg)

        assert listing is not None
        assert _params(db)["reduction_strategy"] == "fixed_amount"
        assert "reduction_stalled = FALSE" in _sql(db)
        assert "next_price_reduction =" not in _sql(db)

    async def test_set_enabled(self) -> None:
        db = _db_returning(_make_row(reduction_enabled=False))
        listing = await ListingRepository().set_enabled(db, "LST-1", False)
        assert listing is not None and listing.reduction_enabled is False
        assert _params(db) == {"listing_id": "LST-1", "enabled": False}


class TestMarketSnapshotRepository:
    async def test_latest_snapshot(self) -> None:
        row = MagicMock(
            listing_id="LST-1", average_price=Decimal("52.00"),
            suggested_price=Decimal("45.00"), sample_size=12, captured_at=NOW,
        )
        snapshot = await MarketSnapshotRepository().get_snapshot(_db_returning(row), "LST-1")
        assert snapshot is not None
        assert snapshot.suggested_price == Decimal("45.00")
        assert snapshot.sample_size == 12

    async def test_no_snapshot(self) -> None:
        assert await MarketSnapshotRepository().get_snapshot(_db_returning(None), "LST-1") is None
