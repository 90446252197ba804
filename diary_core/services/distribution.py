"""
Calendar-day severity distribution.

Every calendar day of the window lands in exactly one bucket, so the bucket
counts (including ``undocumented``) always sum to the window length. Summary
statistics only look at documented days. The mean and the p25/p75 percentiles
are reported rounded to one decimal, half away from zero (1.75 -> 1.8).
"""

import math
from collections.abc import Iterable, Sequence
from datetime import date

from diary_core.domain.models import BucketCounts, CalendarWindow, Distribution, HealthEvent
from diary_core.domain.severity import score_to_level
from diary_core.services.daily_aggregator import build_daily_map
from diary_core.services.kpi import round1, safe_ratio

BURDEN_REFERENCE_DAYS = 30


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Linear-interpolated percentile of an ascending sequence; 0 when empty."""
    if not sorted_values:
        return 0.0
    rank = (p / 100) * (len(sorted_values) - 1)
    lo = math.floor(rank)
    hi = math.ceil(rank)
    if lo == hi:
        return float(sorted_values[lo])
    return sorted_values[lo] + (sorted_values[hi] - sorted_values[lo]) * (rank - lo)


def empty_distribution(calendar_days: int = 0) -> Distribution:
    return Distribution(
        calendar_days=calendar_days,
        documented_days=0,
        distribution=BucketCounts(undocumented=calendar_days),
        avg_daily_max=0.0,
        p25=0.0,
        p75=0.0,
        days_with_burden=0,
        burden_per_30=0.0,
        all_documented_zero=False,
        has_documentation=False,
    )


def build_distribution(events: Iterable[HealthEvent], start: date, end: date) -> Distribution:
    """Classify every day in [start, end] and summarize the documented ones."""
    if end < start:
        return empty_distribution()

    daily = build_daily_map(events, CalendarWindow(start=start, end=end))

    counts = {"none": 0, "mild": 0, "moderate": 0, "severe": 0, "undocumented": 0}
    representatives: list[float] = []

    for record in daily.values():
        if not record.documented or record.representative_severity is None:
            counts["undocumented"] += 1
            continue
        score = record.representative_severity
        representatives.append(score)
        counts[score_to_level(score).value] += 1

    documented_days = len(representatives)
    days_with_burden = sum(1 for score in representatives if score > 0)
    ordered = sorted(representatives)

    return Distribution(
        calendar_days=len(daily),
        documented_days=documented_days,
        distribution=BucketCounts(**counts),
        avg_daily_max=round1(safe_ratio(sum(representatives), documented_days)),
        p25=round1(percentile(ordered, 25)),
        p75=round1(percentile(ordered, 75)),
        days_with_burden=days_with_burden,
        burden_per_30=round1(
            safe_ratio(days_with_burden, documented_days) * BURDEN_REFERENCE_DAYS
        ),
        all_documented_zero=documented_days > 0 and days_with_burden == 0,
        has_documentation=documented_days > 0,
    )
