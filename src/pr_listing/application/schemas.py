from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from config.settings import settings
from src.pr_common.money import price_to_display
from src.pr_listing.domain.models import Listing, ReductionSettings

StrategyName = Literal["fixed_percentage", "fixed_amount", "market_based", "time_based"]


class ReductionSettingsRequest(BaseModel):
    minimum_price: Decimal = Field(gt=0, decimal_places=2)
    reduction_strategy: StrategyName = "fixed_percentage"
    reduction_percentage: Decimal = Field(
        default=settings.DEFAULT_REDUCTION_PERCENTAGE, gt=0, lt=100, decimal_places=2
    )
    reduction_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    reduction_interval_days: int = Field(
        default=settings.DEFAULT_REDUCTION_INTERVAL_DAYS, ge=1
    )

    def to_domain(self) -> ReductionSettings:
        return ReductionSettings(
            minimum_price=self.minimum_price,
            reduction_strategy=self.reduction_strategy,
            reduction_percentage=self.reduction_percentage,
            reduction_amount=self.reduction_amount,
            reduction_interval_days=self.reduction_interval_days,
        )


class ToggleRequest(BaseModel):
    enabled: bool


class ManualReduceRequest(BaseModel):
    # None = one step of the listing's own strategy
    custom_price: Decimal | None = Field(default=None, gt=0, decimal_places=2)


class ListingDetail(BaseModel):
    id: str
    user_id: str
    title: str
    current_price: str
    current_price_display: str
    original_price: str
    minimum_price: str
    reduction_enabled: bool
    reduction_strategy: str
    reduction_percentage: str
    reduction_amount: str
    reduction_interval_days: int
    reduction_stalled: bool
    listing_status: str
    last_price_reduction: datetime | None
    next_price_reduction: datetime | None
    version: int

    @classmethod
    def from_domain(cls, listing: Listing) -> "ListingDetail":
        return cls(
            id=listing.id,
            user_id=listing.user_id,
            title=listing.title,
            current_price=str(listing.current_price),
            current_price_display=price_to_display(listing.current_price),
            original_price=str(listing.original_price),
            minimum_price=str(listing.minimum_price),
            reduction_enabled=listing.reduction_enabled,
            reduction_strategy=listing.reduction_strategy,
            reduction_percentage=str(listing.reduction_percentage),
            reduction_amount=str(listing.reduction_amount),
            reduction_interval_days=listing.reduction_interval_days,
            reduction_stalled=listing.reduction_stalled,
            listing_status=listing.listing_status,
            last_price_reduction=listing.last_price_reduction,
            next_price_reduction=listing.next_price_reduction,
            version=listing.version,
        )


class ManualReduceResponse(BaseModel):
    listing_id: str
    old_price: str
    new_price: str
    reason: str
    strategy: str | None
