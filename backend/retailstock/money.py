# Overview: Conversions between client-facing decimal amounts and stored integer cents.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

# Maximum amount: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_AMOUNT_CENTS = 999_999_999

_CENT = Decimal("0.01")


def to_cents(value) -> int:
    """
    Convert a decimal amount (str, int, float or Decimal) to integer cents.

    Rounds half-up to the nearest cent. Raises ValueError for anything that
    is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError("amount must be a number")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError("amount must be a number")
    if not amount.is_finite():
        raise ValueError("amount must be a finite number")
    return int((amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def format_cents(cents: int | None) -> str | None:
    """Serialize cents as a two-decimal string ("40.00")."""
    if cents is None:
        return None
    return str((Decimal(int(cents)) / 100).quantize(_CENT))
