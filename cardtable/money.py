from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def round_cents(amount: float) -> float:
    """Round to two decimals, halves away from zero."""
    return float(Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP))


def to_cents(amount: float) -> int:
    return int(Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP) * 100)


def from_cents(cents: int) -> float:
    return float(Decimal(cents) / 100)
