"""Fixed-point currency helpers. Amounts are Decimals with two places."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(val) -> Decimal:
    """Coerce a DB/JSON number to a 2-place Decimal. None is zero.

    Floats go through str() so SQLite aggregates like 0.30000000000000004
    come back as 0.30.
    """
    if val is None:
        return ZERO
    if not isinstance(val, Decimal):
        val = Decimal(str(val))
    return val.quantize(CENT, rounding=ROUND_HALF_UP)
