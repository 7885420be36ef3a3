"""HistoryApplicationService — read side of the ledger, for display only.

The engine never reads history for decisions; the latest price lives on the listing.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.pr_common.errors import ListingNotFoundError
from src.pr_history.application.schemas import (
    PriceHistoryItem,
    PriceHistoryResponse,
    cursor_decode,
    cursor_encode,
)
from src.pr_history.domain.repository import HistoryRepositoryProtocol
from src.pr_history.infrastructure.ledger import HistoryLedger
from src.pr_listing.domain.repository import ListingRepositoryProtocol
from src.pr_listing.infrastructure.persistence import ListingRepository


class HistoryApplicationService:
    def __init__(
        self,
        history: HistoryRepositoryProtocol | None = None,
        listings: ListingRepositoryProtocol | None = None,
    ) -> None:
        self._history: HistoryRepositoryProtocol = history or HistoryLedger()
        self._listings: ListingRepositoryProtocol = listings or ListingRepository()

    async def list_history(
        self,
        db: AsyncSession,
        listing_id: str,
        cursor: str | None,
        limit: int,
    ) -> PriceHistoryResponse:
        if await self._listings.get_listing(db, listing_id) is None:
            raise ListingNotFoundError(listing_id)

        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._history.read_for_listing(db, listing_id, cursor_id, limit + 1)
        has_more = len(entries) > limit
        page = entries[:limit]

        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return PriceHistoryResponse(
            listing_id=listing_id,
            items=[PriceHistoryItem.from_domain(e) for e in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )
