"""Pydantic schemas and cursor utilities for the price-history API."""

import base64
import json

from pydantic import BaseModel

from src.pr_common.money import price_to_display
from src.pr_history.domain.models import PriceHistoryEntry

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PriceHistoryItem(BaseModel):
    id: int
    price: str
    price_display: str
    previous_price: str | None
    reason: str
    strategy: str | None
    cycle_id: str | None
    created_at: str

    @classmethod
    def from_domain(cls, e: PriceHistoryEntry) -> "PriceHistoryItem":
        return cls(
            id=e.id,
            price=str(e.price),
            price_display=price_to_display(e.price),
            previous_price=str(e.previous_price) if e.previous_price is not None else None,
            reason=e.reason,
            strategy=e.strategy,
            cycle_id=e.cycle_id,
            created_at=e.created_at.isoformat() if e.created_at else "",
        )


class PriceHistoryResponse(BaseModel):
    listing_id: str
    items: list[PriceHistoryItem]
    next_cursor: str | None
    has_more: bool
