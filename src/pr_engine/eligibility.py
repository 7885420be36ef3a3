"""EligibilitySelector — which listings are due for evaluation right now.

Pure read: safe to call repeatedly and from several runners at once. The SQL
form of the predicate lives in ListingRepository (ELIGIBLE_PREDICATE);
`ineligibility_reason` is the same predicate for a single, freshly fetched row.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pr_common.datetime_utils import ensure_utc
from src.pr_common.enums import ListingStatus
from src.pr_listing.domain.models import Listing
from src.pr_listing.domain.repository import ListingRepositoryProtocol
from src.pr_listing.infrastructure.persistence import ListingRepository

logger = logging.getLogger(__name__)


def ineligibility_reason(listing: Listing, now: datetime) -> str | None:
    """None when the listing is eligible, otherwise a short human-readable reason."""
    if not listing.reduction_enabled:
        return "price reduction disabled"
    if listing.listing_status != ListingStatus.ACTIVE:
        return f"listing status is {listing.listing_status}"
    if listing.at_floor:
        return "price already at floor"
    if listing.reduction_stalled:
        return "reduction stalled until floor or strategy changes"
    if listing.next_price_reduction is not None and ensure_utc(
        listing.next_price_reduction
    ) > ensure_utc(now):
        return f"not due until {listing.next_price_reduction.isoformat()}"
    return None


class EligibilitySelector:
    def __init__(self, repo: ListingRepositoryProtocol | None = None) -> None:
        self._repo: ListingRepositoryProtocol = repo or ListingRepository()

    async def select_due(
        self, db: AsyncSession, now: datetime, limit: int | None = None
    ) -> list[str]:
        """Ids due at `now`; an empty list is a normal outcome."""
        ids = await self._repo.query_eligible(db, now, limit)
        logger.debug("Eligibility at %s: %d listings due", now.isoformat(), len(ids))
        return ids
