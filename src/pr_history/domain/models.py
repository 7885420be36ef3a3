"""Domain models for pr_history — pure dataclasses."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class PriceHistoryEntry:
    id: int                          # BIGSERIAL, insertion order = chronological order
    listing_id: str
    price: Decimal                   # effective from created_at onwards
    reason: str                      # PriceChangeReason value
    previous_price: Decimal | None = None
    strategy: str | None = None
    cycle_id: str | None = None
    created_at: datetime | None = None
