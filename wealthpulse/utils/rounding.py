# PURPOSE: Decimal helpers for rounding scores and money.
# CONTEXT: Scores and money round half-up regardless of float representation.

from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP, getcontext

# Enough precision for portfolio-sized currency values with cents.
getcontext().prec = 28


def round_half_up(x: float, places: int = 0) -> float:
    """
    Round a float half-up (0.5 -> 1), unlike Python's built-in banker's rounding.

    parameters:
    - x: float – value to round.
    - places: int – decimal places to keep (default 0).

    returns:
    - float – rounded value.
    """
    q = Decimal(1).scaleb(-places)
    return float(Decimal(str(x)).quantize(q, ROUND_HALF_UP))


def ceil_money(x: float, factor: str = "1") -> int:
    """Multiply by an exact decimal factor and round up to a whole currency unit."""
    return int((Decimal(str(x)) * Decimal(factor)).to_integral_value(ROUND_CEILING))

