"""Conversion between major-unit price input and integer minor units (cents)"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

PriceInput = Union[str, int, float, Decimal]


def to_cents(price: PriceInput) -> int:
    """
    Convert a major-unit price ("10,50", "10.50", 10.5) to integer cents.

    Rounds half-up to the nearest cent. Raises ValueError for blank,
    malformed or negative input.
    """
    if isinstance(price, bool):
        raise ValueError(f"Invalid price format: {price!r}")

    if isinstance(price, str):
        cleaned = price.strip().replace(",", ".")
        if not cleaned:
            raise ValueError("price string cannot be empty")
    else:
        cleaned = str(price)

    try:
        amount = Decimal(cleaned)
    except InvalidOperation as e:
        raise ValueError(f"Invalid price format: {price!r}") from e

    if not amount.is_finite():
        raise ValueError(f"Invalid price format: {price!r}")

    cents = (amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    if cents < 0:
        raise ValueError("Price must be non-negative")
    return int(cents)


def from_cents(cents: int) -> str:
    """Format integer cents as a two-decimal major-unit string"""
    sign = "-" if cents < 0 else ""
    whole, fraction = divmod(abs(cents), 100)
    return f"{sign}{whole}.{fraction:02d}"
