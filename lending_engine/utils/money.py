"""Fixed-point money helpers (amounts are integer cents everywhere)"""

from decimal import Decimal, ROUND_HALF_UP


def percent_of(amount_cents: int, percent: Decimal) -> int:
    """
    Percentage of an amount in cents, rounded half-up to the cent.

    `percent` is expressed in percentage points: Decimal("10") is 10%.
    """
    value = Decimal(amount_cents) * Decimal(percent) / Decimal(100)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cents_to_decimal(amount_cents: int) -> Decimal:
    """Convert cents to a 2-decimal amount for display"""
    return (Decimal(amount_cents) / Decimal(100)).quantize(Decimal("0.01"))
