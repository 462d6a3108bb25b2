"""
Reading generator: draws a bounded pseudo-random temperature and formats it
for the wire.
"""
import random
from decimal import Context, Decimal, ROUND_CEILING, ROUND_FLOOR
from typing import Optional

_ONE_DECIMAL = Decimal('0.1')

# Wide enough for the integer part of any finite float (about 309 digits)
_WIRE_CONTEXT = Context(prec=400)


def _to_tenths(value: float, rounding: str) -> Decimal:
    return Decimal(value).quantize(_ONE_DECIMAL, rounding=rounding, context=_WIRE_CONTEXT)


def effective_max(min_bound: float, max_bound: float, excursion_active: bool) -> float:
    """Upper bound of the draw; excursion mode widens it by one full range."""
    if excursion_active:
        return max_bound + (max_bound - min_bound)
    return max_bound


def format_reading(value: float) -> str:
    """Format a finite value with exactly one decimal digit and a '.' separator.

    Truncates toward negative infinity so a draw just below the upper bound
    (e.g. 9.97 with a bound of 10) is never printed as the bound itself.
    Decimal formatting does not consult the process locale.
    """
    return str(_to_tenths(value, ROUND_FLOOR))


def generate_reading(min_bound: float, max_bound: float, excursion_active: bool,
                     rng: Optional[random.Random] = None) -> str:
    """Return a reading in [min_bound, effective_max) as a one-decimal string.

    Args:
        min_bound: Lower bound of the draw (inclusive), finite
        max_bound: Upper bound of the draw (exclusive), finite
        excursion_active: Allow the reading to go past max_bound
        rng: Random source; the module-level generator is used when omitted

    Bounds are not validated here: with min_bound >= max_bound the result
    falls in the reversed (or empty) interval instead of raising. With a
    lower bound that is not a whole tenth, truncated draws are lifted to the
    first tenth above it when that tenth is still below the upper bound.
    """
    upper = effective_max(min_bound, max_bound, excursion_active)
    r = (rng or random).random()
    reading = _to_tenths(min_bound + r * (upper - min_bound), ROUND_FLOOR)
    lowest = _to_tenths(min_bound, ROUND_CEILING)
    if lowest < upper:
        reading = max(reading, lowest)
    return str(reading)
