"""ReductionExecutor — one listing, one evaluation, at most one committed cut.

Transaction ownership: the executor owns the transaction on the session it is
given. The guarded UPDATE and the history INSERT are committed together or
rolled back together; there is no state in which one is visible without the
other.

Outcome mapping:
  - not found / no longer eligible / NoChange / stale precondition -> Skipped
  - configuration error                                             -> Failed
  - transient storage error, retries exhausted                      -> Failed
  - anything else propagates (the runner turns it into Failed)
"""

import asyncio
import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pr_common.datetime_utils import add_days
from src.pr_common.enums import (
    ListingStatus,
    PriceChangeReason,
    ReductionStrategy,
)
from src.pr_common.errors import (
    InvalidReductionSettingsError,
    ListingChangedError,
    ListingNotActiveError,
    ListingNotFoundError,
    PriceNotLowerError,
)
from src.pr_common.money import clamp_to_floor, to_price
from src.pr_engine.eligibility import ineligibility_reason
from src.pr_engine.invariants import check_listing_invariants
from src.pr_engine.outcomes import Failed, Reduced, ReductionOutcome, Skipped
from src.pr_history.domain.repository import HistoryRepositoryProtocol
from src.pr_history.infrastructure.ledger import HistoryLedger
from src.pr_listing.domain.models import Listing, MarketSnapshot, PriceUpdate
from src.pr_listing.domain.repository import (
    ListingRepositoryProtocol,
    MarketDataProviderProtocol,
)
from src.pr_listing.domain.validation import validate_reduction_settings
from src.pr_listing.infrastructure.market_data import MarketSnapshotRepository
from src.pr_listing.infrastructure.persistence import ListingRepository
from src.pr_pricing.domain.evaluator import PolicyEvaluator
from src.pr_pricing.domain.models import NoChange

logger = logging.getLogger(__name__)

STALE_PRECONDITION = "stale precondition"


def is_transient(exc: BaseException) -> bool:
    """Connection-level failures worth retrying; constraint violations are not."""
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


class ReductionExecutor:
    def __init__(
        self,
        listings: ListingRepositoryProtocol | None = None,
        history: HistoryRepositoryProtocol | None = None,
        market_data: MarketDataProviderProtocol | None = None,
        evaluator: PolicyEvaluator | None = None,
        max_retries: int = settings.REDUCTION_MAX_RETRIES,
        retry_backoff_seconds: float = settings.REDUCTION_RETRY_BACKOFF_SECONDS,
    ) -> None:
        self._listings: ListingRepositoryProtocol = listings or ListingRepository()
        self._history: HistoryRepositoryProtocol = history or HistoryLedger()
        self._market: MarketDataProviderProtocol = market_data or MarketSnapshotRepository()
        self._evaluator = evaluator or PolicyEvaluator()
        self._max_retries = max_retries
        self._backoff = retry_backoff_seconds

    # ------------------------------------------------------------------
    # Scheduled path
    # ------------------------------------------------------------------

    async def execute(
        self,
        db: AsyncSession,
        listing_id: str,
        now: datetime,
        dry_run: bool = False,
        cycle_id: str | None = None,
    ) -> ReductionOutcome:
        attempt = 0
        while True:
            try:
                return await self._attempt(db, listing_id, now, dry_run, cycle_id)
            except InvalidReductionSettingsError as e:
                await db.rollback()
                logger.warning("Listing %s has invalid settings: %s", listing_id, e.message)
                return Failed(listing_id, e.message)
            except DBAPIError as e:
                await db.rollback()
                if not is_transient(e):
                    raise
                if attempt >= self._max_retries:
                    logger.error(
                        "Listing %s: storage error after %d attempts: %s",
                        listing_id, attempt + 1, e,
                    )
                    return Failed(listing_id, f"storage error: {e.__class__.__name__}")
                attempt += 1
                logger.warning(
                    "Listing %s: transient storage error (attempt %d/%d), retrying",
                    listing_id, attempt, self._max_retries + 1,
                )
                await asyncio.sleep(self._backoff * attempt)
            except Exception:
                await db.rollback()
                raise

    async def _attempt(
        self,
        db: AsyncSession,
        listing_id: str,
        now: datetime,
        dry_run: bool,
        cycle_id: str | None,
    ) -> ReductionOutcome:
        listing = await self._listings.get_listing(db, listing_id)
        if listing is None:
            return Skipped(listing_id, "listing not found")

        # The row may have changed since selection
        reason = ineligibility_reason(listing, now)
        if reason is not None:
            return Skipped(listing_id, reason, listing.current_price)

        validate_reduction_settings(listing)

        snapshot: MarketSnapshot | None = None
        if listing.reduction_strategy == ReductionStrategy.MARKET_BASED:
            snapshot = await self._market.get_snapshot(db, listing_id)

        result = self._evaluator.evaluate(listing, now, snapshot)
        if isinstance(result, NoChange):
            logger.info("Listing %s: no change (%s)", listing_id, result.reason)
            return Skipped(listing_id, result.reason, listing.current_price)

        old_price = listing.current_price
        new_price = clamp_to_floor(result.price, listing.minimum_price)

        if new_price >= old_price:
            if dry_run or listing.reduction_strategy == ReductionStrategy.TIME_BASED:
                # time_based cuts grow with overdue time, so a later run can still move it
                return Skipped(listing_id, "cannot reduce further", old_price)
            if await self._listings.mark_stalled(db, listing_id, listing.version):
                await db.commit()
                logger.info(
                    "Listing %s stalled at %s (floor %s)",
                    listing_id, old_price, listing.minimum_price,
                )
            else:
                await db.rollback()
            return Skipped(listing_id, "cannot reduce further", old_price)

        if dry_run:
            return Reduced(
                listing_id, old_price, new_price, result.reason, result.strategy, dry_run=True
            )

        update = PriceUpdate(
            new_price=new_price,
            last_price_reduction=now,
            next_price_reduction=add_days(now, listing.reduction_interval_days),
        )
        updated = await self._listings.compare_and_update(
            db, listing_id, listing.version, old_price, update, require_due=True
        )
        if updated is None:
            await db.rollback()
            logger.info("Listing %s: %s, skipped", listing_id, STALE_PRECONDITION)
            return Skipped(listing_id, STALE_PRECONDITION, old_price)

        entry = await self._history.append(
            db,
            listing_id,
            new_price,
            result.reason,
            now,
            previous_price=old_price,
            strategy=result.strategy,
            cycle_id=cycle_id,
        )
        check_listing_invariants(updated, entry)
        await db.commit()

        logger.info(
            "Listing %s reduced %s -> %s (%s, %s)",
            listing_id, old_price, new_price, result.strategy, result.reason,
        )
        return Reduced(listing_id, old_price, new_price, result.reason, result.strategy)

    async def committed_outcome(
        self, db: AsyncSession, listing_id: str, cycle_id: str
    ) -> Reduced | None:
        """The cut this cycle committed for the listing, if any, read back from history."""
        entries = await self._history.read_for_listing(db, listing_id, None, 1)
        if not entries or entries[0].cycle_id != cycle_id:
            return None
        entry = entries[0]
        return Reduced(
            listing_id, entry.previous_price, entry.price, entry.reason, entry.strategy
        )

    # ------------------------------------------------------------------
    # Manual path
    # ------------------------------------------------------------------

    async def apply_manual(
        self,
        db: AsyncSession,
        listing_id: str,
        now: datetime,
        custom_price: Decimal | None = None,
    ) -> Reduced:
        """Seller-initiated cut: custom price, or one step of the listing's own policy.

        Does not require the listing to be due or reduction to be enabled, but the
        floor and the strictly-lower rule hold exactly as for scheduled cuts.
        """
        try:
            listing = await self._listings.get_listing(db, listing_id)
            if listing is None:
                raise ListingNotFoundError(listing_id)
            if listing.listing_status != ListingStatus.ACTIVE:
                raise ListingNotActiveError(listing_id, listing.listing_status)

            old_price = listing.current_price
            if custom_price is not None:
                new_price = clamp_to_floor(to_price(custom_price), listing.minimum_price)
                strategy = None
            else:
                new_price, strategy = await self._policy_step(db, listing, now)

            if new_price >= old_price:
                raise PriceNotLowerError(new_price, old_price)

            update = PriceUpdate(
                new_price=new_price,
                last_price_reduction=now,
                next_price_reduction=add_days(now, listing.reduction_interval_days),
            )
            updated = await self._listings.compare_and_update(
                db, listing_id, listing.version, old_price, update, require_due=False
            )
            if updated is None:
                raise ListingChangedError(listing_id)

            entry = await self._history.append(
                db,
                listing_id,
                new_price,
                PriceChangeReason.MANUAL.value,
                now,
                previous_price=old_price,
                strategy=strategy,
            )
            check_listing_invariants(updated, entry)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Listing %s manually reduced %s -> %s", listing_id, old_price, new_price)
        return Reduced(listing_id, old_price, new_price, PriceChangeReason.MANUAL.value, strategy)

    async def _policy_step(
        self, db: AsyncSession, listing: Listing, now: datetime
    ) -> tuple[Decimal, str]:
        validate_reduction_settings(listing)
        snapshot = None
        if listing.reduction_strategy == ReductionStrategy.MARKET_BASED:
            snapshot = await self._market.get_snapshot(db, listing.id)
        result = self._evaluator.evaluate(listing, now, snapshot)
        if isinstance(result, NoChange):
            # Nothing below current price to offer; reported as not-lower
            return listing.current_price, listing.reduction_strategy
        return clamp_to_floor(result.price, listing.minimum_price), result.strategy
