"""
Medication limit evaluation.

Thresholds are fixed: the warning point is always one intake before the limit.
The period type only decides how the count is gathered and phrased, it never
changes the threshold math.
"""

from collections.abc import Iterable
from datetime import date

from diary_core.domain.models import (
    LimitEvaluation,
    LimitMessage,
    LimitStatus,
    MedicationIntake,
    MedicationLimit,
    PeriodType,
)
from diary_core.services.daily_aggregator import count_intakes_in_trailing_window

PERIOD_DAYS: dict[PeriodType, int] = {
    PeriodType.DAY: 1,
    PeriodType.WEEK: 7,
    PeriodType.MONTH: 30,
}

PERIOD_PHRASES: dict[PeriodType, str] = {
    PeriodType.DAY: "today",
    PeriodType.WEEK: "in the last 7 days",
    PeriodType.MONTH: "in the last 30 days",
}

STATUS_TITLES: dict[LimitStatus, str] = {
    LimitStatus.WARNING: "Limit almost reached",
    LimitStatus.REACHED: "Limit reached",
    LimitStatus.EXCEEDED: "Limit exceeded",
}

_STATUS_RANK: dict[LimitStatus, int] = {
    LimitStatus.EXCEEDED: 0,
    LimitStatus.REACHED: 1,
    LimitStatus.WARNING: 2,
    LimitStatus.SAFE: 3,
}


def get_limit_status(current_count: int, limit_count: int) -> LimitStatus:
    if current_count > limit_count:
        return LimitStatus.EXCEEDED
    if current_count == limit_count:
        return LimitStatus.REACHED
    if limit_count > 1 and current_count == limit_count - 1:
        return LimitStatus.WARNING
    return LimitStatus.SAFE


def _intakes(count: int) -> str:
    return f"{count} intake" if count == 1 else f"{count} intakes"


def build_limit_message(
    status: LimitStatus,
    current_count: int,
    limit_count: int,
    period_type: PeriodType | str,
    medication_name: str,
) -> LimitMessage | None:
    """Banner text for a limit status; None when the status is safe."""
    status = LimitStatus(status)
    if status is LimitStatus.SAFE:
        return None

    phrase = PERIOD_PHRASES[PeriodType(period_type)]

    if status is LimitStatus.WARNING:
        remaining = max(0, limit_count - current_count)
        return LimitMessage(
            title=STATUS_TITLES[status],
            status_line=f"{current_count}/{limit_count} intakes {phrase}.",
            detail_line=f"{_intakes(remaining)} left before your limit of {limit_count}.",
        )

    if status is LimitStatus.REACHED:
        status_line = f"Your limit of {limit_count} {phrase} is reached."
    else:
        status_line = (
            f"Your limit of {limit_count} {phrase} is exceeded "
            f"by {current_count - limit_count}."
        )
    return LimitMessage(
        title=STATUS_TITLES[status],
        status_line=status_line,
        detail_line=f"{medication_name}: {_intakes(current_count)} {phrase}.",
    )


def evaluate_limit(
    limit: MedicationLimit, intakes: Iterable[MedicationIntake], as_of: date
) -> LimitEvaluation:
    current = count_intakes_in_trailing_window(
        intakes, limit.medication_name, as_of, PERIOD_DAYS[limit.period_type]
    )
    status = get_limit_status(current, limit.limit_count)
    return LimitEvaluation(
        medication_name=limit.medication_name,
        period_type=limit.period_type,
        limit_count=limit.limit_count,
        current_count=current,
        status=status,
        remaining=max(0, limit.limit_count - current),
        over_by=max(0, current - limit.limit_count),
        message=build_limit_message(
            status, current, limit.limit_count, limit.period_type, limit.medication_name
        ),
    )


def evaluate_limits(
    limits: Iterable[MedicationLimit], intakes: Iterable[MedicationIntake], as_of: date
) -> list[LimitEvaluation]:
    """Evaluate every active limit, most urgent first."""
    intakes = list(intakes)
    evaluations = [evaluate_limit(limit, intakes, as_of) for limit in limits if limit.is_active]
    return sorted(
        evaluations, key=lambda e: (_STATUS_RANK[e.status], e.medication_name.lower())
    )
