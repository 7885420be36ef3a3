"""Reduction-settings validation — the configuration-error boundary.

Called when settings are written (reject) and again by the executor before
evaluation (a bad row that slipped past the boundary becomes Failed, never a
silent coercion).
"""

from decimal import Decimal

from src.pr_common.enums import ReductionStrategy
from src.pr_common.errors import InvalidReductionSettingsError
from src.pr_listing.domain.models import Listing, ReductionSettings

_KNOWN_STRATEGIES = {s.value for s in ReductionStrategy}


def validate_reduction_settings(
    cfg: ReductionSettings | Listing, current_price: Decimal | None = None
) -> None:
    """Raise InvalidReductionSettingsError on the first broken rule."""
    if cfg.reduction_strategy not in _KNOWN_STRATEGIES:
        raise InvalidReductionSettingsError(
            f"unknown reduction_strategy {cfg.reduction_strategy!r}"
        )
    if cfg.minimum_price <= 0:
        raise InvalidReductionSettingsError(
            f"minimum_price must be positive, got {cfg.minimum_price}"
        )
    if cfg.reduction_interval_days < 1:
        raise InvalidReductionSettingsError(
            f"reduction_interval_days must be >= 1, got {cfg.reduction_interval_days}"
        )

    strategy = cfg.reduction_strategy
    if strategy == ReductionStrategy.FIXED_AMOUNT:
        if cfg.reduction_amount <= 0:
            raise InvalidReductionSettingsError(
                f"reduction_amount must be positive for fixed_amount, got {cfg.reduction_amount}"
            )
    elif not (0 < cfg.reduction_percentage < 100):
        # percentage also weights the market_based fallback
        raise InvalidReductionSettingsError(
            f"reduction_percentage must be in (0, 100), got {cfg.reduction_percentage}"
        )

    if current_price is not None and cfg.minimum_price > current_price:
        raise InvalidReductionSettingsError(
            f"minimum_price {cfg.minimum_price} is above current_price {current_price}"
        )
