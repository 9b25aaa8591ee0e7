"""Currency rounding."""
from decimal import ROUND_HALF_UP, Decimal

_CENTS = Decimal("0.01")


def round_money(value: float) -> float:
    """Round to two decimal places, halves away from zero."""
    return float(Decimal(repr(float(value))).quantize(_CENTS, rounding=ROUND_HALF_UP))
