"""Fee calculation: rental and late fees for book reservations.

Rules:
- All amounts are Decimal with exactly two fractional digits.
- Rounding is ROUND_HALF_UP, applied at every computation boundary.
- Late fee is LATE_FEE_RATE of the book price per day late.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

# 15% of the book price per day late
LATE_FEE_RATE = Decimal("0.15")

_CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def round_money(value: Decimal) -> Decimal:
    """Quantize a monetary amount to cents, rounding half-up."""
    return Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def compute_base_fee(daily_rate: Decimal | None, rental_days: int | None) -> Decimal:
    """Return daily_rate x rental_days, or 0.00 when either is missing or days <= 0."""
    if daily_rate is None or rental_days is None or rental_days <= 0:
        return ZERO
    return round_money(daily_rate * rental_days)


def compute_late_fee(book_price: Decimal | None, days_late: int) -> Decimal:
    """Return (book_price x LATE_FEE_RATE) x days_late, or 0.00 when not late."""
    if book_price is None or days_late <= 0:
        return ZERO
    per_day = book_price * LATE_FEE_RATE
    return round_money(per_day * days_late)


def days_late(expected_date: date | None, actual_date: date | None) -> int:
    """Whole days actual_date falls after expected_date (0 if on time or unknown)."""
    if expected_date is None or actual_date is None:
        return 0
    if actual_date <= expected_date:
        return 0
    return (actual_date - expected_date).days
