"""Global enums — must match DB CHECK constraints exactly.

See alembic/versions/002_create_listings.py and 003_create_price_history.py.
"""

from enum import Enum


class ListingStatus(str, Enum):
    ACTIVE = "Active"
    PAUSED = "Paused"
    ENDED = "Ended"
    SOLD = "Sold"
    DRAFT = "Draft"


class ReductionStrategy(str, Enum):
    FIXED_PERCENTAGE = "fixed_percentage"
    FIXED_AMOUNT = "fixed_amount"
    MARKET_BASED = "market_based"
    TIME_BASED = "time_based"


class PriceChangeReason(str, Enum):
    """History ledger tag: why the price changed at this entry."""
    INITIAL = "initial"
    SCHEDULED_REDUCTION = "scheduled_reduction"
    MANUAL = "manual"
    MARKET_BASED = "market_based"


class ReductionOutcomeType(str, Enum):
    REDUCED = "Reduced"
    SKIPPED = "Skipped"
    FAILED = "Failed"


class NotificationType(str, Enum):
    PRICE_REDUCTION = "price_reduction"
