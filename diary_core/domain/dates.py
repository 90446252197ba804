"""
Date range resolution for report windows.

All calendar arithmetic happens on ``datetime.date`` values, never on wall-clock
durations, so month/year boundaries and DST transitions cannot shift a day.
"Today" is always taken in one fixed reference zone rather than the client's
local zone, so every consumer sees the same window for the same preset.

Windows for fixed presets end at yesterday: today is still being documented
and would distort rate metrics. ``include_today`` switches that off for all
presets at once.
"""

from collections.abc import Iterable, Iterator
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from diary_core.domain.models import CalendarWindow, RangePreset

# Inclusive day counts per fixed preset
PRESET_DAYS: dict[RangePreset, int] = {
    RangePreset.ONE_MONTH: 30,
    RangePreset.THREE_MONTHS: 90,
    RangePreset.SIX_MONTHS: 180,
    RangePreset.TWELVE_MONTHS: 365,
}

MAX_STREAK_DAYS = 400


def today_in_zone(tz_name: str, now: datetime | None = None) -> date:
    """Calendar date of ``now`` (default: current instant) in ``tz_name``."""
    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(ZoneInfo(tz_name)).date()


def yesterday_in_zone(tz_name: str, now: datetime | None = None) -> date:
    return today_in_zone(tz_name, now) - timedelta(days=1)


def days_between_inclusive(start: date, end: date) -> int:
    """Number of calendar days in [start, end]; 0 if end precedes start."""
    return max(0, (end - start).days + 1)


def enumerate_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end inclusive, ascending."""
    for offset in range(days_between_inclusive(start, end)):
        yield start + timedelta(days=offset)


def effective_end(reference_today: date, include_today: bool = False) -> date:
    """Last day a report window may cover."""
    return reference_today if include_today else reference_today - timedelta(days=1)


def clamp_to_effective_end(start: date, end: date, last_day: date) -> tuple[date, date, bool]:
    """Clamp a user-selected range so that it never reaches past ``last_day``.

    Returns ``(start, end, was_clamped)``. Start is pulled down to end when the
    clamp would otherwise invert the range.
    """
    was_clamped = False
    if end > last_day:
        end = last_day
        was_clamped = True
    if start > end:
        start = end
        was_clamped = True
    return start, end, was_clamped


def resolve(
    preset: RangePreset | str,
    reference_today: date,
    *,
    custom_from: date | None = None,
    custom_to: date | None = None,
    tracking_start: date | None = None,
    earliest_event: date | None = None,
    include_today: bool = False,
) -> CalendarWindow:
    """Turn a symbolic preset into a concrete inclusive window.

    - ``1m``/``3m``/``6m``/``12m``: fixed inclusive day counts ending at the
      effective end (yesterday unless ``include_today``).
    - ``all``: tracking start (or earliest event) to the effective end.
    - ``custom``: the explicit bounds, missing ones defaulting to the effective
      end, clamped so the range never reaches past the effective end. An
      inverted custom range collapses to its end day.
    """
    preset = RangePreset(preset)
    last_day = effective_end(reference_today, include_today)

    if preset is RangePreset.CUSTOM:
        start, end, was_clamped = clamp_to_effective_end(
            custom_from or last_day, custom_to or last_day, last_day
        )
        return CalendarWindow(start=start, end=end, clamped=was_clamped)

    if preset is RangePreset.ALL:
        start = tracking_start or earliest_event or last_day
        return CalendarWindow(start=min(start, last_day), end=last_day)

    days = PRESET_DAYS[preset]
    return CalendarWindow(start=last_day - timedelta(days=days - 1), end=last_day)


def consecutive_documented_days(documented: Iterable[date], last_date: date | None) -> int:
    """Length of the run of documented days ending at ``last_date``."""
    documented = set(documented)
    if last_date is None or not documented:
        return 0

    count = 0
    cursor = last_date
    while cursor in documented and count < MAX_STREAK_DAYS:
        count += 1
        cursor -= timedelta(days=1)
    return count


def available_presets(documentation_span_days: int) -> list[RangePreset]:
    """Presets worth offering given how many days of history exist.

    Order: ``all`` first, then fixed presets the history can fill, ``custom`` last.
    """
    presets = [RangePreset.ALL]
    presets.extend(
        preset for preset, days in PRESET_DAYS.items() if documentation_span_days >= days
    )
    presets.append(RangePreset.CUSTOM)
    return presets


def default_preset(documentation_span_days: int) -> RangePreset:
    if documentation_span_days >= PRESET_DAYS[RangePreset.ONE_MONTH]:
        return RangePreset.ONE_MONTH
    return RangePreset.ALL


def validate_preset(preset: RangePreset | str, documentation_span_days: int) -> RangePreset:
    """Fall back to the default preset when the history is too short for ``preset``."""
    preset = RangePreset(preset)
    required = PRESET_DAYS.get(preset)
    if required is not None and documentation_span_days < required:
        return default_preset(documentation_span_days)
    return preset
