"""ListingApplicationService — the seller-facing side of price reduction.

Settings are validated here (the configuration-error boundary) before they
reach the store. Every method owns its transaction: commit on success,
rollback and re-raise on any error.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pr_common.enums import PriceChangeReason
from src.pr_common.errors import ListingChangedError, ListingNotFoundError
from src.pr_engine.executor import ReductionExecutor
from src.pr_history.domain.repository import HistoryRepositoryProtocol
from src.pr_history.infrastructure.ledger import HistoryLedger
from src.pr_listing.application.schemas import (
    ListingDetail,
    ManualReduceRequest,
    ManualReduceResponse,
    ReductionSettingsRequest,
)
from src.pr_listing.domain.repository import ListingRepositoryProtocol
from src.pr_listing.domain.validation import validate_reduction_settings
from src.pr_listing.infrastructure.persistence import ListingRepository

logger = logging.getLogger(__name__)


class ListingApplicationService:
    def __init__(
        self,
        listings: ListingRepositoryProtocol | None = None,
        history: HistoryRepositoryProtocol | None = None,
        executor: ReductionExecutor | None = None,
    ) -> None:
        self._listings: ListingRepositoryProtocol = listings or ListingRepository()
        self._history: HistoryRepositoryProtocol = history or HistoryLedger()
        self._executor = executor or ReductionExecutor(
            listings=self._listings, history=self._history
        )

    async def get_listing(self, db: AsyncSession, listing_id: str) -> ListingDetail:
        listing = await self._listings.get_listing(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return ListingDetail.from_domain(listing)

    async def update_reduction_settings(
        self, db: AsyncSession, listing_id: str, req: ReductionSettingsRequest
    ) -> ListingDetail:
        """Replace the reduction settings. Clears a stall; leaves the schedule alone."""
        try:
            listing = await self._listings.get_listing(db, listing_id)
            if listing is None:
                raise ListingNotFoundError(listing_id)

            new_settings = req.to_domain()
            validate_reduction_settings(new_settings, current_price=listing.current_price)

            updated = await self._listings.update_settings(
                db, listing_id, listing.version, new_settings
            )
            if updated is None:
                raise ListingChangedError(listing_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Listing %s reduction settings updated: %s floor=%s",
            listing_id, new_settings.reduction_strategy, new_settings.minimum_price,
        )
        return ListingDetail.from_domain(updated)

    async def set_reduction_enabled(
        self, db: AsyncSession, listing_id: str, enabled: bool, now: datetime
    ) -> ListingDetail:
        """Toggle reduction. The first enable of a listing records its starting price."""
        try:
            listing = await self._listings.get_listing(db, listing_id)
            if listing is None:
                raise ListingNotFoundError(listing_id)
            if enabled:
                validate_reduction_settings(listing, current_price=listing.current_price)

            updated = await self._listings.set_enabled(db, listing_id, enabled)
            if updated is None:
                raise ListingNotFoundError(listing_id)

            if enabled and not await self._history.has_entries(db, listing_id):
                await self._history.append(
                    db,
                    listing_id,
                    updated.current_price,
                    PriceChangeReason.INITIAL.value,
                    now,
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Listing %s price reduction %s",
                    listing_id, "enabled" if enabled else "disabled")
        return ListingDetail.from_domain(updated)

    async def manual_reduce(
        self, db: AsyncSession, listing_id: str, req: ManualReduceRequest, now: datetime
    ) -> ManualReduceResponse:
        result = await self._executor.apply_manual(db, listing_id, now, req.custom_price)
        return ManualReduceResponse(
            listing_id=result.listing_id,
            old_price=str(result.old_price),
            new_price=str(result.new_price),
            reason=result.reason,
            strategy=result.strategy,
        )
