"""
Daily aggregation of diary events.

Groups events by calendar day and reduces each day to one record. Three
"no data" states are kept apart:

- no event on the day                 -> documented=False, entry_count=0
- events, but severity never set      -> documented=False, entry_count>0
- at least one explicit severity (0+) -> documented=True

The representative severity of a documented day is the maximum explicit value.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import UTC, date, datetime, time, timedelta

from diary_core.domain.dates import enumerate_dates
from diary_core.domain.medications import normalize_name, same_medication
from diary_core.domain.models import CalendarWindow, DayRecord, HealthEvent, MedicationIntake

END_OF_DAY = time(23, 59, 59)
_EPOCH = datetime.min.replace(tzinfo=UTC)


def _aware(value: datetime | None) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def event_sort_key(event: HealthEvent) -> tuple[date, time, datetime, str]:
    """Ascending key: date, time of day (absent = end of day), creation time, id."""
    return (event.date, event.time or END_OF_DAY, _aware(event.created_at), event.id)


def most_recent_event(events: Iterable[HealthEvent]) -> HealthEvent | None:
    """Latest event by date and time of day; an event without time counts as end of day."""
    return max(events, key=event_sort_key, default=None)


def events_in_window(events: Iterable[HealthEvent], window: CalendarWindow) -> list[HealthEvent]:
    return [event for event in events if window.contains(event.date)]


def group_by_day(events: Iterable[HealthEvent]) -> dict[date, list[HealthEvent]]:
    grouped: dict[date, list[HealthEvent]] = defaultdict(list)
    for event in events:
        grouped[event.date].append(event)
    return dict(grouped)


def summarize_day(day: date, day_events: list[HealthEvent]) -> DayRecord:
    """Reduce the events of one day to a DayRecord."""
    scores = [event.severity for event in day_events if event.severity is not None]
    latest = most_recent_event(day_events)

    medications: list[str] = []
    for event in day_events:
        for name in event.medications:
            if name and not any(same_medication(name, seen) for seen in medications):
                medications.append(name)

    return DayRecord(
        date=day,
        documented=bool(scores),
        representative_severity=max(scores) if scores else None,
        entry_count=len(day_events),
        medications=medications,
        latest_event_id=latest.id if latest else None,
    )


def build_daily_map(events: Iterable[HealthEvent], window: CalendarWindow) -> dict[date, DayRecord]:
    """One DayRecord per calendar day of the window, in ascending date order."""
    by_day = group_by_day(events_in_window(events, window))
    return {
        day: summarize_day(day, by_day.get(day, []))
        for day in enumerate_dates(window.start, window.end)
    }


def intakes_from_events(events: Iterable[HealthEvent]) -> list[MedicationIntake]:
    """Every medication listed on an event counts as one intake on that event's day."""
    return [
        MedicationIntake(medication_name=name, date=event.date, time=event.time, event_id=event.id)
        for event in events
        for name in event.medications
        if name and name.strip()
    ]


def merge_intakes(
    events: Iterable[HealthEvent], recorded: Iterable[MedicationIntake]
) -> list[MedicationIntake]:
    """Intakes derived from events plus separately recorded ones.

    A recorded intake linked to an event that already lists the same medication
    is the same intake seen twice and is dropped.
    """
    merged = intakes_from_events(events)
    seen = {(i.event_id, normalize_name(i.medication_name)) for i in merged}
    for intake in recorded:
        key = (intake.event_id, normalize_name(intake.medication_name))
        if intake.event_id is not None and key in seen:
            continue
        merged.append(intake)
    return merged


def count_intakes_in_trailing_window(
    intakes: Iterable[MedicationIntake], medication_name: str, as_of: date, days: int
) -> int:
    """Intakes of ``medication_name`` in the ``days`` calendar days ending at ``as_of``."""
    if days <= 0:
        return 0
    first_day = as_of - timedelta(days=days - 1)
    return sum(
        1
        for intake in intakes
        if first_day <= intake.date <= as_of
        and same_medication(intake.medication_name, medication_name)
    )
