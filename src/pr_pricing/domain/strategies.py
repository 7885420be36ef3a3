"""Reduction strategies — one class per ReductionStrategy value.

Each strategy is a pure function of (listing, now, snapshot). New strategies are
registered in PolicyEvaluator without touching the executor.

time_based curve (linear with a hard cap):
    anchor       = last_price_reduction or created_at
    intervals    = max(elapsed_days / reduction_interval_days, 1)
    effective_%  = min(pct * (1 + (intervals - 1) * step), max_percentage)
  On-schedule runs cut exactly `pct`; each extra overdue interval adds `step`
  times the base cut, never more than `max_percentage` in a single run.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from src.pr_common.datetime_utils import elapsed_days
from src.pr_common.enums import PriceChangeReason, ReductionStrategy
from src.pr_common.money import apply_percentage_cut, to_price
from src.pr_listing.domain.models import Listing, MarketSnapshot
from src.pr_pricing.domain.models import Candidate, EvaluationResult, NoChange


class Strategy(Protocol):
    name: str

    def evaluate(
        self, listing: Listing, now: datetime, snapshot: MarketSnapshot | None
    ) -> EvaluationResult: ...


class FixedPercentageStrategy:
    name = ReductionStrategy.FIXED_PERCENTAGE.value

    def evaluate(
        self, listing: Listing, now: datetime, snapshot: MarketSnapshot | None
    ) -> EvaluationResult:
        price = apply_percentage_cut(listing.current_price, listing.reduction_percentage)
        return Candidate(price=price, strategy=self.name)


class FixedAmountStrategy:
    name = ReductionStrategy.FIXED_AMOUNT.value

    def evaluate(
        self, listing: Listing, now: datetime, snapshot: MarketSnapshot | None
    ) -> EvaluationResult:
        price = to_price(listing.current_price - listing.reduction_amount)
        return Candidate(price=price, strategy=self.name)


class TimeBasedStrategy:
    name = ReductionStrategy.TIME_BASED.value

    def __init__(self, step: Decimal, max_percentage: Decimal) -> None:
        self._step = step
        self._max_percentage = max_percentage

    def effective_percentage(self, listing: Listing, now: datetime) -> Decimal:
        anchor = listing.last_price_reduction or listing.created_at
        if anchor is None:
            intervals = Decimal(1)
        else:
            days = Decimal(str(elapsed_days(anchor, now)))
            intervals = max(days / Decimal(listing.reduction_interval_days), Decimal(1))
        scaled = listing.reduction_percentage * (Decimal(1) + (intervals - 1) * self._step)
        return min(scaled, self._max_percentage)

    def evaluate(
        self, listing: Listing, now: datetime, snapshot: MarketSnapshot | None
    ) -> EvaluationResult:
        pct = self.effective_percentage(listing, now)
        return Candidate(
            price=apply_percentage_cut(listing.current_price, pct), strategy=self.name
        )


class MarketBasedStrategy:
    """Follow the market suggestion down; fall back to a percentage cut toward the average."""

    name = ReductionStrategy.MARKET_BASED.value

    def __init__(self, min_sample_size: int) -> None:
        self._min_sample_size = min_sample_size

    def evaluate(
        self, listing: Listing, now: datetime, snapshot: MarketSnapshot | None
    ) -> EvaluationResult:
        if snapshot is None:
            return NoChange("market data unavailable")
        if snapshot.sample_size < self._min_sample_size:
            return NoChange(
                f"market sample too small ({snapshot.sample_size} < {self._min_sample_size})"
            )

        current = listing.current_price
        if snapshot.suggested_price is not None:
            suggested = to_price(snapshot.suggested_price)
            if current > suggested:
                return Candidate(
                    price=suggested,
                    strategy=self.name,
                    reason=PriceChangeReason.MARKET_BASED.value,
                )
            return NoChange("current price at or below market suggestion")

        if snapshot.average_price is not None:
            average = to_price(snapshot.average_price)
            if current <= average:
                return NoChange("current price at or below market average")
            cut = apply_percentage_cut(current, listing.reduction_percentage)
            return Candidate(price=max(cut, average), strategy=self.name)

        return NoChange("market snapshot has no price data")
