"""Domain models for pr_listing — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Listing:
    id: str
    user_id: str
    title: str
    current_price: Decimal
    original_price: Decimal
    minimum_price: Decimal
    reduction_enabled: bool
    reduction_strategy: str           # ReductionStrategy value
    reduction_percentage: Decimal     # 0-100
    reduction_amount: Decimal
    reduction_interval_days: int
    listing_status: str               # ListingStatus value
    last_price_reduction: datetime | None = None
    next_price_reduction: datetime | None = None
    reduction_stalled: bool = False
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def at_floor(self) -> bool:
        return self.current_price <= self.minimum_price


@dataclass(frozen=True)
class MarketSnapshot:
    """Read-only market data owned by an external collector."""

    listing_id: str
    average_price: Decimal | None
    suggested_price: Decimal | None
    sample_size: int
    captured_at: datetime | None = None


@dataclass(frozen=True)
class PriceUpdate:
    """Fields written by one committed reduction."""

    new_price: Decimal
    last_price_reduction: datetime
    next_price_reduction: datetime


@dataclass(frozen=True)
class ReductionSettings:
    """User-editable reduction configuration (validated before it is stored)."""

    minimum_price: Decimal
    reduction_strategy: str
    reduction_percentage: Decimal
    reduction_amount: Decimal
    reduction_interval_days: int
