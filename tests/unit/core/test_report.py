"""
Tests for report assembly in `diary_core/services/report.py`.

Covers:
- Canonical entry ordering and pagination
- Raw and normalized KPIs
- Overuse flag from acute-class medication days
- Per-medication breakdown with effectiveness ratings
- Note redaction and optional weather
"""

from datetime import UTC, date, datetime, time, timedelta

import pytest

from diary_core.domain.models import (
    CalendarWindow,
    HealthEvent,
    LimitStatus,
    MedicationEffect,
    MedicationIntake,
    MedicationLimit,
    RangePreset,
    SeverityLevel,
    WeatherDay,
)
from diary_core.services.report import (
    OVERUSE_DAYS_PER_30,
    SCHEMA_VERSION,
    assemble_report,
    is_overuse,
    location_frequency,
    paginate,
    sort_entries_descending,
)

WINDOW = CalendarWindow(start=date(2024, 1, 1), end=date(2024, 1, 30))
GENERATED_AT = datetime(2024, 1, 31, 8, 0, tzinfo=UTC)


def _day(n: int) -> date:
    return WINDOW.start + timedelta(days=n - 1)


@pytest.fixture
def events() -> list[HealthEvent]:
    return [
        HealthEvent(
            id="e1",
            date=_day(1),
            time=time(9, 0),
            severity=8.0,
            medications=["Sumatriptan"],
            notes="woke up with it",
            aura="visual",
            pain_locations=["left temple"],
        ),
        HealthEvent(
            id="e2",
            date=_day(1),
            time=time(14, 0),
            severity=5.0,
            medications=["sumatriptan", "Ibuprofen"],
            pain_locations=["left temple", "neck"],
        ),
        HealthEvent(id="e3", date=_day(3), severity=0.0, aura="keine"),
        HealthEvent(id="e4", date=_day(5), severity=3.0, medications=["Ibuprofen"]),
        HealthEvent(id="e5", date=_day(6), medications=["Maxalt"]),
        HealthEvent(id="before", date=date(2023, 12, 31), severity=9.0, medications=["Maxalt"]),
    ]


class TestOrdering:
    def test_absent_time_sorts_first_within_day(self) -> None:
        same_day = [
            HealthEvent(id="a", date=_day(2), time=time(9, 0)),
            HealthEvent(id="b", date=_day(2), time=time(14, 0)),
            HealthEvent(id="c", date=_day(2)),
        ]

        assert [e.id for e in sort_entries_descending(same_day)] == ["c", "b", "a"]

    def test_date_then_creation_time(self) -> None:
        entries = [
            HealthEvent(id="old", date=_day(1)),
            HealthEvent(
                id="first", date=_day(2), created_at=datetime(2024, 1, 2, 8, tzinfo=UTC)
            ),
            HealthEvent(
                id="second", date=_day(2), created_at=datetime(2024, 1, 2, 9, tzinfo=UTC)
            ),
        ]

        assert [e.id for e in sort_entries_descending(entries)] == ["second", "first", "old"]

    def test_order_is_stable_for_identical_inputs(self, events: list[HealthEvent]) -> None:
        first = [e.id for e in sort_entries_descending(events)]
        second = [e.id for e in sort_entries_descending(reversed(events))]

        assert first == second


class TestPaginate:
    def test_pages(self, events: list[HealthEvent]) -> None:
        assert [e.id for e in paginate(events, 1, 2)] == ["e1", "e2"]
        assert [e.id for e in paginate(events, 3, 2)] == ["e5", "before"]
        assert paginate(events, 4, 2) == []

    def test_invalid_arguments(self, events: list[HealthEvent]) -> None:
        with pytest.raises(ValueError):
            paginate(events, 0, 10)
        with pytest.raises(ValueError):
            paginate(events, 1, 0)


class TestAssembleReport:
    def test_period_and_kpis(self, events: list[HealthEvent]) -> None:
        report = assemble_report(events, WINDOW, generated_at=GENERATED_AT)

        assert report.schema_version == SCHEMA_VERSION
        assert report.period.days_in_range == 30
        assert report.period.documented_days == 3
        assert report.period.documentation_gap_days == 27
        assert report.period.entries_count == 5

        assert report.kpis.pain_days == 2
        assert report.kpis.severe_days == 1
        assert report.kpis.acute_med_days == 2
        assert report.kpis.acute_intakes == 3
        assert report.kpis.medication_days == 3
        assert report.kpis.aura_days == 1
        assert report.kpis.avg_intensity == 5.5

    def test_period_streak_and_clamp_flag(self) -> None:
        window = CalendarWindow(start=_day(1), end=_day(10), clamped=True)
        run = [
            HealthEvent(id=str(n), date=_day(n), severity=0.0 if n == 9 else 4.0)
            for n in (5, 8, 9, 10)
        ]

        report = assemble_report(
            run,
            window,
            preset=RangePreset.CUSTOM,
            available_presets=[RangePreset.ALL, RangePreset.CUSTOM],
            generated_at=GENERATED_AT,
        )

        assert report.period.documented_streak_days == 3
        assert report.period.range_clamped is True
        assert report.period.preset is RangePreset.CUSTOM
        assert report.period.available_presets == [RangePreset.ALL, RangePreset.CUSTOM]

    def test_normalized_kpis(self, events: list[HealthEvent]) -> None:
        window = CalendarWindow(start=date(2024, 1, 1), end=date(2024, 1, 10))

        report = assemble_report(events, window, generated_at=GENERATED_AT)

        assert report.normalized_kpis.target_days == 30
        assert report.normalized_kpis.pain_days == 6.0
        assert report.normalized_kpis.acute_intakes == 9.0
        assert report.normalized_kpis.medication_days == 9.0

    def test_distribution_matches_period(self, events: list[HealthEvent]) -> None:
        report = assemble_report(events, WINDOW, generated_at=GENERATED_AT)

        assert report.distribution.calendar_days == report.period.days_in_range
        assert report.distribution.distribution.severe == 1
        assert report.distribution.distribution.none == 1
        assert report.distribution.distribution.mild == 1

    def test_location_frequency(self, events: list[HealthEvent]) -> None:
        report = assemble_report(events, WINDOW, generated_at=GENERATED_AT)

        assert report.location_frequency == {"left temple": 2, "neck": 1}

    def test_entries_sorted_and_paginated(self, events: list[HealthEvent]) -> None:
        report = assemble_report(events, WINDOW, page=1, page_size=3, generated_at=GENERATED_AT)

        assert [e.id for e in report.entries] == ["e5", "e4", "e3"]
        assert report.entries_total == 5
        assert report.entries_page_size == 3
        assert report.entries[1].severity_level is SeverityLevel.MILD
        assert report.entries[0].severity_level is None

    def test_notes_redacted(self, events: list[HealthEvent]) -> None:
        shown = assemble_report(events, WINDOW, generated_at=GENERATED_AT)
        redacted = assemble_report(events, WINDOW, include_notes=False, generated_at=GENERATED_AT)

        assert next(e for e in shown.entries if e.id == "e1").note == "woke up with it"
        assert all(e.note is None for e in redacted.entries)
        assert redacted.kpis == shown.kpis

    def test_weather_optional(self, events: list[HealthEvent]) -> None:
        without = assemble_report(events, WINDOW, generated_at=GENERATED_AT)
        with_weather = assemble_report(
            events,
            WINDOW,
            weather=[
                WeatherDay(date=_day(2), pressure_mb=1008.0),
                WeatherDay(date=_day(1), pressure_mb=1012.0),
                WeatherDay(date=date(2024, 2, 5), pressure_mb=990.0),
            ],
            generated_at=GENERATED_AT,
        )

        assert without.weather is None
        assert with_weather.weather is not None
        assert [w.date for w in with_weather.weather] == [_day(1), _day(2)]
        assert with_weather.kpis == without.kpis

    def test_identical_inputs_identical_report(self, events: list[HealthEvent]) -> None:
        first = assemble_report(events, WINDOW, generated_at=GENERATED_AT)
        second = assemble_report(list(reversed(events)), WINDOW, generated_at=GENERATED_AT)

        assert first == second

    def test_limits_use_intakes_before_window(self, events: list[HealthEvent]) -> None:
        limits = [MedicationLimit(medication_name="Maxalt", limit_count=2)]

        report = assemble_report(
            events, WINDOW, limits=limits, as_of=_day(6), generated_at=GENERATED_AT
        )

        evaluation = report.limit_evaluations[0]
        assert evaluation.current_count == 2
        assert evaluation.status is LimitStatus.REACHED
        assert report.kpis.acute_intakes == 3


class TestMedicationBreakdown:
    def test_grouped_by_normalized_name(self, events: list[HealthEvent]) -> None:
        effects = [
            MedicationEffect(event_id="e1", medication_name="Sumatriptan", score=7.5),
            MedicationEffect(event_id="e2", medication_name="SUMATRIPTAN", score=10.0),
            MedicationEffect(event_id="e4", medication_name="Sumatriptan", score=0.0),
        ]

        report = assemble_report(events, WINDOW, effects=effects, generated_at=GENERATED_AT)
        stats = {s.name: s for s in report.medications}

        suma = stats["Sumatriptan"]
        assert suma.total_intakes == 2
        assert suma.days_used == 1
        assert suma.is_acute_class is True
        assert suma.avg_effectiveness == 8.8
        assert suma.effectiveness_count == 2

        ibu = stats["Ibuprofen"]
        assert ibu.total_intakes == 2
        assert ibu.days_used == 2
        assert ibu.is_acute_class is False
        assert ibu.avg_effectiveness is None
        assert ibu.avg_per_30 == 2.0

    def test_standalone_intakes_counted(self, events: list[HealthEvent]) -> None:
        extra = [MedicationIntake(medication_name="Ibuprofen", date=_day(10))]

        report = assemble_report(events, WINDOW, intakes=extra, generated_at=GENERATED_AT)

        ibu = next(s for s in report.medications if s.name == "Ibuprofen")
        assert ibu.total_intakes == 3
        assert report.kpis.medication_days == 4

    def test_intake_linked_to_listing_event_counted_once(self) -> None:
        events = [HealthEvent(id="e1", date=_day(3), medications=["Sumatriptan"])]
        linked = [MedicationIntake(medication_name="sumatriptan ", date=_day(3), event_id="e1")]
        limits = [MedicationLimit(medication_name="Sumatriptan", limit_count=5)]

        report = assemble_report(
            events, WINDOW, intakes=linked, limits=limits, generated_at=GENERATED_AT
        )

        assert report.kpis.acute_intakes == 1
        assert report.medications[0].total_intakes == 1
        assert report.limit_evaluations[0].current_count == 1

    def test_linked_intake_of_other_medication_kept(self) -> None:
        events = [HealthEvent(id="e1", date=_day(3), medications=["Sumatriptan"])]
        linked = [MedicationIntake(medication_name="Ibuprofen", date=_day(3), event_id="e1")]

        report = assemble_report(events, WINDOW, intakes=linked, generated_at=GENERATED_AT)

        assert {s.name: s.total_intakes for s in report.medications} == {
            "Sumatriptan": 1,
            "Ibuprofen": 1,
        }

    def test_most_used_first(self, events: list[HealthEvent]) -> None:
        report = assemble_report(events, WINDOW, generated_at=GENERATED_AT)

        assert report.medications[0].name == "Ibuprofen"


class TestOveruse:
    def test_threshold(self) -> None:
        assert is_overuse(OVERUSE_DAYS_PER_30)
        assert not is_overuse(OVERUSE_DAYS_PER_30 - 0.1)

    def test_flag_from_acute_days(self) -> None:
        window = CalendarWindow(start=date(2024, 1, 1), end=date(2024, 1, 30))
        events = [
            HealthEvent(id=str(i), date=window.start + timedelta(days=i), medications=["Relpax"])
            for i in range(10)
        ]

        assert assemble_report(events, window, generated_at=GENERATED_AT).overuse_warning is True
        assert (
            assemble_report(events[:9], window, generated_at=GENERATED_AT).overuse_warning
            is False
        )

    def test_non_acute_medication_never_flags(self) -> None:
        window = CalendarWindow(start=date(2024, 1, 1), end=date(2024, 1, 30))
        events = [
            HealthEvent(id=str(i), date=window.start + timedelta(days=i), medications=["Ibuprofen"])
            for i in range(30)
        ]

        assert assemble_report(events, window, generated_at=GENERATED_AT).overuse_warning is False


class TestLocationFrequency:
    def test_placeholders_ignored(self) -> None:
        events = [
            HealthEvent(id="a", date=_day(1), pain_locations=["forehead", "-"]),
            HealthEvent(id="b", date=_day(2), pain_locations=["keine", "forehead", "neck"]),
        ]

        assert location_frequency(events) == {"forehead": 2, "neck": 1}
