"""Decimal money helpers for listing prices.

All prices are Decimal with 2 decimal places (USD-style minimum unit).
Rounding is ROUND_HALF_UP everywhere so repeated evaluation is stable.
No float arithmetic anywhere on the price path.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_price(value: Decimal | int | str) -> Decimal:
    """Coerce to Decimal and round to the currency's minimum unit (half-up)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def apply_percentage_cut(price: Decimal, percentage: Decimal) -> Decimal:
    """price * (1 - percentage/100), rounded half-up to cents."""
    return to_price(price * (Decimal(1) - percentage / HUNDRED))


def clamp_to_floor(candidate: Decimal, floor: Decimal) -> Decimal:
    """Never return a price below the floor; non-positive candidates land on the floor."""
    if candidate <= 0:
        return to_price(floor)
    return to_price(max(candidate, floor))


def price_to_display(price: Decimal) -> str:
    """Decimal('1234.5') -> '$1,234.50', Decimal('-3') -> '-$3.00'."""
    price = to_price(price)
    if price < 0:
        return f"-${-price:,.2f}"
    return f"${price:,.2f}"
