"""
KPI normalization.

Raw incidence counts (pain days, intakes, ...) are only comparable across
windows of different length once rescaled to a common reference period.
"""

from decimal import ROUND_HALF_UP, Decimal

DEFAULT_TARGET_DAYS = 30

_ONE_DECIMAL = Decimal("0.1")


def round1(value: float) -> float:
    """Round half away from zero to one decimal, identically on every platform."""
    return float(Decimal(repr(float(value))).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def normalize(
    raw_value: float, days_in_range: int, target_days: int = DEFAULT_TARGET_DAYS
) -> float:
    """Rescale ``raw_value`` observed over ``days_in_range`` days to ``target_days``.

    Returns 0 for an empty or negative window instead of dividing by zero.
    """
    if days_in_range <= 0:
        return 0.0
    return round1(raw_value * target_days / days_in_range)


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator
