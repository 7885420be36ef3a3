"""PolicyEvaluator — pure candidate-price computation, no I/O.

Same inputs (listing, now, snapshot) always yield the same result; the only
time dependency is the explicit `now` argument.
"""

from datetime import datetime

from config.settings import settings
from src.pr_common.errors import InvalidReductionSettingsError
from src.pr_common.money import to_price
from src.pr_listing.domain.models import Listing, MarketSnapshot
from src.pr_pricing.domain.models import Candidate, EvaluationResult
from src.pr_pricing.domain.strategies import (
    FixedAmountStrategy,
    FixedPercentageStrategy,
    MarketBasedStrategy,
    Strategy,
    TimeBasedStrategy,
)


def default_strategies() -> dict[str, Strategy]:
    strategies: list[Strategy] = [
        FixedPercentageStrategy(),
        FixedAmountStrategy(),
        TimeBasedStrategy(
            step=settings.TIME_BASED_STEP,
            max_percentage=settings.TIME_BASED_MAX_PERCENTAGE,
        ),
        MarketBasedStrategy(min_sample_size=settings.MARKET_MIN_SAMPLE_SIZE),
    ]
    return {s.name: s for s in strategies}


class PolicyEvaluator:
    def __init__(self, strategies: dict[str, Strategy] | None = None) -> None:
        self._strategies = strategies if strategies is not None else default_strategies()

    def evaluate(
        self,
        listing: Listing,
        now: datetime,
        snapshot: MarketSnapshot | None = None,
    ) -> EvaluationResult:
        if listing.minimum_price <= 0:
            raise InvalidReductionSettingsError(
                f"minimum_price must be positive, got {listing.minimum_price}"
            )
        strategy = self._strategies.get(listing.reduction_strategy)
        if strategy is None:
            raise InvalidReductionSettingsError(
                f"unknown reduction_strategy {listing.reduction_strategy!r}"
            )

        result = strategy.evaluate(listing, now, snapshot)
        if isinstance(result, Candidate) and result.price <= 0:
            # A cut larger than the price lands on the floor, never at or below zero
            return Candidate(
                price=to_price(listing.minimum_price),
                strategy=result.strategy,
                reason=result.reason,
            )
        return result
