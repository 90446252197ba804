"""
Report assembly.

Composes the classifiers and aggregators into the one payload that in-app
charts, PDF export and the clinician view all render. Nothing here re-derives a
classification rule: severity buckets come from ``domain.severity``, acute-class
detection from ``domain.medications``, rates from ``services.kpi``.

Entry listings use one canonical order: date descending, then time of day
descending (an entry without time sorts as 23:59:59), then creation time
descending, then id descending.
"""

from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime

import structlog

from diary_core.domain.dates import consecutive_documented_days
from diary_core.domain.medications import is_acute_class, normalize_name
from diary_core.domain.models import (
    CalendarWindow,
    CoreKPIs,
    DayRecord,
    DiaryReport,
    HealthEvent,
    MedicationEffect,
    MedicationIntake,
    MedicationLimit,
    MedicationStat,
    NormalizedKPIs,
    RangePreset,
    ReportEntry,
    ReportPeriod,
    WeatherDay,
)
from diary_core.domain.severity import is_severe, score_to_level
from diary_core.services.daily_aggregator import (
    build_daily_map,
    event_sort_key,
    events_in_window,
    merge_intakes,
)
from diary_core.services.distribution import build_distribution
from diary_core.services.kpi import DEFAULT_TARGET_DAYS, normalize, round1, safe_ratio
from diary_core.services.limits import evaluate_limits

logger = structlog.get_logger(__name__)

SCHEMA_VERSION = "v2.0"

# Acute-class medication days per 30 days from which overuse is flagged
OVERUSE_DAYS_PER_30 = 10.0

_NO_LOCATION = {"", "none", "keine", "-"}


def sort_entries_descending(events: Iterable[HealthEvent]) -> list[HealthEvent]:
    return sorted(events, key=event_sort_key, reverse=True)


def paginate(items: Sequence[HealthEvent], page: int, page_size: int) -> list[HealthEvent]:
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    offset = (page - 1) * page_size
    return list(items[offset : offset + page_size])


def to_report_entry(event: HealthEvent, include_notes: bool = True) -> ReportEntry:
    return ReportEntry(
        id=event.id,
        date=event.date,
        time=event.time,
        created_at=event.created_at,
        severity=event.severity,
        severity_level=score_to_level(event.severity) if event.severity is not None else None,
        medications=list(event.medications),
        note=event.notes if include_notes else None,
        aura=event.aura,
        pain_locations=list(event.pain_locations),
    )


def location_frequency(events: Iterable[HealthEvent]) -> dict[str, int]:
    """How often each pain location was recorded, most frequent first."""
    counts: dict[str, int] = defaultdict(int)
    for event in events:
        for location in event.pain_locations:
            if location.strip().lower() not in _NO_LOCATION:
                counts[location] += 1
    return dict(sorted(counts.items(), key=lambda item: (-item[1], item[0])))


def compute_core_kpis(
    daily: dict[date, DayRecord],
    window_events: Sequence[HealthEvent],
    window_intakes: Sequence[MedicationIntake],
) -> CoreKPIs:
    documented = [
        record.representative_severity
        for record in daily.values()
        if record.documented and record.representative_severity is not None
    ]
    burden = [score for score in documented if score > 0]

    return CoreKPIs(
        pain_days=len(burden),
        severe_days=sum(1 for score in burden if is_severe(score)),
        acute_med_days=len(
            {i.date for i in window_intakes if is_acute_class(i.medication_name)}
        ),
        acute_intakes=sum(1 for i in window_intakes if is_acute_class(i.medication_name)),
        medication_days=len({i.date for i in window_intakes}),
        aura_days=len({event.date for event in window_events if event.has_aura}),
        avg_intensity=round1(safe_ratio(sum(burden), len(burden))),
    )


def normalize_kpis(kpis: CoreKPIs, days_in_range: int, target_days: int) -> NormalizedKPIs:
    return NormalizedKPIs(
        target_days=target_days,
        pain_days=normalize(kpis.pain_days, days_in_range, target_days),
        severe_days=normalize(kpis.severe_days, days_in_range, target_days),
        acute_med_days=normalize(kpis.acute_med_days, days_in_range, target_days),
        acute_intakes=normalize(kpis.acute_intakes, days_in_range, target_days),
        medication_days=normalize(kpis.medication_days, days_in_range, target_days),
    )


def medication_breakdown(
    window_intakes: Sequence[MedicationIntake],
    effects: Iterable[MedicationEffect],
    days_in_range: int,
    target_days: int = DEFAULT_TARGET_DAYS,
) -> list[MedicationStat]:
    """Per-medication usage and rated effectiveness, most used first."""
    spellings: dict[str, Counter[str]] = defaultdict(Counter)
    intake_counts: dict[str, int] = defaultdict(int)
    days_used: dict[str, set[date]] = defaultdict(set)
    event_ids: dict[str, set[str]] = defaultdict(set)

    for intake in window_intakes:
        key = normalize_name(intake.medication_name)
        if not key:
            continue
        spellings[key][intake.medication_name] += 1
        intake_counts[key] += 1
        days_used[key].add(intake.date)
        if intake.event_id is not None:
            event_ids[key].add(intake.event_id)

    # Display name: most frequent spelling, alphabetical on ties
    names = {
        key: min(counter.items(), key=lambda item: (-item[1], item[0]))[0]
        for key, counter in spellings.items()
    }

    ratings: dict[str, list[float]] = defaultdict(list)
    for effect in effects:
        key = normalize_name(effect.medication_name)
        if effect.event_id in event_ids.get(key, ()):
            ratings[key].append(effect.score)

    stats = [
        MedicationStat(
            name=names[key],
            total_intakes=intake_counts[key],
            days_used=len(days_used[key]),
            avg_per_30=normalize(intake_counts[key], days_in_range, target_days),
            avg_effectiveness=round1(sum(ratings[key]) / len(ratings[key]))
            if ratings[key]
            else None,
            effectiveness_count=len(ratings[key]),
            is_acute_class=is_acute_class(names[key]),
        )
        for key in names
    ]
    return sorted(stats, key=lambda s: (-s.days_used, -s.total_intakes, s.name.lower()))


def is_overuse(acute_med_days_per_30: float) -> bool:
    return acute_med_days_per_30 >= OVERUSE_DAYS_PER_30


def assemble_report(
    events: Iterable[HealthEvent],
    window: CalendarWindow,
    *,
    limits: Iterable[MedicationLimit] = (),
    intakes: Iterable[MedicationIntake] = (),
    effects: Iterable[MedicationEffect] = (),
    weather: Iterable[WeatherDay] | None = None,
    as_of: date | None = None,
    include_notes: bool = True,
    page: int = 1,
    page_size: int = 100,
    timezone: str = "Europe/Berlin",
    target_days: int = DEFAULT_TARGET_DAYS,
    generated_at: datetime | None = None,
    preset: RangePreset | None = None,
    available_presets: Sequence[RangePreset] = (),
) -> DiaryReport:
    """
    Build the full report for ``window``.

    ``events`` and ``intakes`` may extend beyond the window: KPIs only look at
    the window, limits look at the trailing periods ending at ``as_of``
    (defaults to the window end). Separately recorded ``intakes`` are added to
    the intakes derived from the events' medication lists, except where the
    linked event already lists that medication.
    """
    all_events = list(events)
    all_intakes = merge_intakes(all_events, intakes)
    window_events = events_in_window(all_events, window)
    window_intakes = [i for i in all_intakes if window.contains(i.date)]

    days_in_range = window.days
    daily = build_daily_map(window_events, window)
    distribution = build_distribution(window_events, window.start, window.end)
    kpis = compute_core_kpis(daily, window_events, window_intakes)
    normalized = normalize_kpis(kpis, days_in_range, target_days)

    ordered = sort_entries_descending(window_events)
    page_events = paginate(ordered, page, page_size)

    report = DiaryReport(
        schema_version=SCHEMA_VERSION,
        generated_at=generated_at or datetime.now(UTC),
        timezone=timezone,
        period=ReportPeriod(
            from_date=window.start,
            to_date=window.end,
            days_in_range=days_in_range,
            documented_days=distribution.documented_days,
            documentation_gap_days=days_in_range - distribution.documented_days,
            entries_count=len(window_events),
            documented_streak_days=consecutive_documented_days(
                (day for day, record in daily.items() if record.documented), window.end
            ),
            range_clamped=window.clamped,
            preset=preset,
            available_presets=list(available_presets),
        ),
        kpis=kpis,
        normalized_kpis=normalized,
        medications=medication_breakdown(window_intakes, effects, days_in_range, target_days),
        distribution=distribution,
        location_frequency=location_frequency(window_events),
        overuse_warning=is_overuse(normalize(kpis.acute_med_days, days_in_range)),
        limit_evaluations=evaluate_limits(limits, all_intakes, as_of or window.end),
        weather=sorted(
            (day for day in weather if window.contains(day.date)), key=lambda day: day.date
        )
        if weather is not None
        else None,
        entries=[to_report_entry(event, include_notes) for event in page_events],
        entries_total=len(ordered),
        entries_page=page,
        entries_page_size=page_size,
    )

    logger.info(
        "report_assembled",
        window_start=window.start.isoformat(),
        window_end=window.end.isoformat(),
        entries=len(window_events),
        documented_days=distribution.documented_days,
        overuse_warning=report.overuse_warning,
    )
    return report
