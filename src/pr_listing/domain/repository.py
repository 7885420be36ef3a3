"""Repository Protocols — dependency inversion for testability.

Unit tests inject a mock (or an in-memory fake) that conforms to these Protocols.
Infrastructure layer provides the real implementations.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pr_listing.domain.models import (
    Listing,
    MarketSnapshot,
    PriceUpdate,
    ReductionSettings,
)


class ListingRepositoryProtocol(Protocol):
    async def get_listing(self, db: AsyncSession, listing_id: str) -> Listing | None: ...

    async def query_eligible(
        self, db: AsyncSession, now: datetime, limit: int | None
    ) -> list[str]: ...

    async def compare_and_update(
        self,
        db: AsyncSession,
        listing_id: str,
        expected_version: int,
        expected_price: Decimal,
        update: PriceUpdate,
        require_due: bool,
    ) -> Listing | None:
        """Apply `update` only if version and price still match. None = stale."""
        ...

    async def mark_stalled(
        self, db: AsyncSession, listing_id: str, expected_version: int
    ) -> bool: ...

    async def update_settings(
        self,
        db: AsyncSession,
        listing_id: str,
        expected_version: int,
        new_settings: ReductionSettings,
    ) -> Listing | None: ...

    async def set_enabled(
        self, db: AsyncSession, listing_id: str, enabled: bool
    ) -> Listing | None: ...


class MarketDataProviderProtocol(Protocol):
    async def get_snapshot(
        self, db: AsyncSession, listing_id: str
    ) -> MarketSnapshot | None: ...
