"""
End-to-end demo of the diary report pipeline.

This script walks through:
1. Configuration loading
2. Ingestion of stored diary rows (mixed numeric and legacy label severities)
3. Report building for several presets
4. Medication limit banners
5. Degraded enrichment (weather source down)

Run with: uv run python demo_report.py
"""

import asyncio
from datetime import UTC, date, datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from diary_adapters.diary_rows import row_to_limit, rows_to_events
from diary_core.config import configure_logging, get_config, print_config_summary
from diary_core.domain.models import CalendarWindow, DiaryReport, RangePreset, WeatherDay
from diary_core.services import (
    DataSourceError,
    InMemoryEventSource,
    InMemoryLimitSource,
    InMemoryWeatherSource,
    ReportRequest,
    ReportService,
    Result,
)

console = Console()

LEGACY_LABELS = ["leicht", "mittel", "stark", "keine"]


def sample_rows(today: date, days: int = 120) -> list[dict]:
    """A deterministic diary: older rows use labels, newer rows use scores."""
    rows: list[dict] = []
    for offset in range(days, 0, -1):
        day = today - timedelta(days=offset)
        if offset % 3 == 0:
            continue  # undocumented day

        row: dict = {
            "id": f"row-{offset}",
            "selected_date": day.isoformat(),
            "selected_time": f"{8 + offset % 12:02d}:15",
            "timestamp_created": f"{day.isoformat()}T{8 + offset % 12:02d}:20:00Z",
            "pain_locations": ["forehead"] if offset % 2 else ["left temple", "neck"],
        }
        if offset > 60:
            row["pain_level"] = LEGACY_LABELS[offset % len(LEGACY_LABELS)]
        else:
            row["severity_score"] = (offset * 7) % 11
        if offset % 5 == 0:
            row["medications"] = ["Sumatriptan 50mg"]
            row["aura_type"] = "visual"
        elif offset % 4 == 0:
            row["medications"] = ["Ibuprofen"]
        rows.append(row)

    # Rows a report must survive
    rows.append({"id": "broken-date", "selected_date": "2025-02-30", "severity_score": 5})
    rows.append({"id": None, "selected_date": today.isoformat()})
    return rows


def sample_limits() -> list[dict]:
    return [
        {"medication_name": "Sumatriptan 50mg", "limit_count": 6, "period_type": "month"},
        {"medication_name": "Ibuprofen", "limit_count": 3, "period_type": "week"},
        {"medication_name": "Naproxen", "limit_count": 1, "period_type": "day", "is_active": False},
    ]


class UnavailableWeatherSource:
    """Weather source that is down, as happens with rate-limited public APIs."""

    source_name = "weather-api"

    async def fetch_weather(self, window: CalendarWindow) -> Result[list[WeatherDay], Exception]:
        return Result.err(DataSourceError("HTTP 503 from weather provider"))


def render_report(title: str, report: DiaryReport) -> None:
    period = report.period
    console.print(
        Panel(
            f"{period.from_date} to {period.to_date} ({period.days_in_range} days, "
            f"{period.documented_days} documented, "
            f"current streak {period.documented_streak_days})",
            title=title,
            style="blue",
        )
    )

    kpi_table = Table(title="KPIs")
    kpi_table.add_column("Metric", style="cyan")
    kpi_table.add_column("Raw", style="white")
    kpi_table.add_column(f"Per {report.normalized_kpis.target_days} days", style="green")
    kpi_table.add_row(
        "Pain days", str(report.kpis.pain_days), f"{report.normalized_kpis.pain_days:.1f}"
    )
    kpi_table.add_row(
        "Severe days", str(report.kpis.severe_days), f"{report.normalized_kpis.severe_days:.1f}"
    )
    kpi_table.add_row(
        "Triptan days",
        str(report.kpis.acute_med_days),
        f"{report.normalized_kpis.acute_med_days:.1f}",
    )
    kpi_table.add_row(
        "Medication days",
        str(report.kpis.medication_days),
        f"{report.normalized_kpis.medication_days:.1f}",
    )
    kpi_table.add_row("Aura days", str(report.kpis.aura_days), "")
    kpi_table.add_row("Avg intensity", f"{report.kpis.avg_intensity:.1f}", "")
    console.print(kpi_table)

    buckets = report.distribution.distribution
    dist_table = Table(title="Calendar days by severity")
    for column in ("none", "mild", "moderate", "severe", "undocumented"):
        dist_table.add_column(column, style="magenta")
    dist_table.add_row(
        str(buckets.none),
        str(buckets.mild),
        str(buckets.moderate),
        str(buckets.severe),
        str(buckets.undocumented),
    )
    console.print(dist_table)

    med_table = Table(title="Medications")
    med_table.add_column("Name", style="cyan")
    med_table.add_column("Intakes", style="white")
    med_table.add_column("Days", style="white")
    med_table.add_column("Per 30 days", style="green")
    med_table.add_column("Triptan", style="yellow")
    for stat in report.medications:
        med_table.add_row(
            stat.name,
            str(stat.total_intakes),
            str(stat.days_used),
            f"{stat.avg_per_30:.1f}",
            "yes" if stat.is_acute_class else "",
        )
    console.print(med_table)

    if report.overuse_warning:
        console.print("Medication overuse threshold reached", style="red")


def render_limits(report: DiaryReport) -> None:
    for evaluation in report.limit_evaluations:
        if evaluation.message is None:
            console.print(
                f"{evaluation.medication_name}: {evaluation.current_count}/"
                f"{evaluation.limit_count} ({evaluation.period_type.value})",
                style="green",
            )
            continue
        style = "yellow" if evaluation.status.value == "warning" else "red"
        console.print(
            Panel(
                f"{evaluation.message.status_line}\n{evaluation.message.detail_line}",
                title=evaluation.message.title,
                style=style,
            )
        )


async def run_demo() -> None:
    configure_logging()
    config = get_config()

    console.print(Panel("Diary Insights - Report Demo", style="bold blue"))
    print_config_summary()

    today = datetime.now(UTC).date()
    events = rows_to_events(sample_rows(today))
    limits = [row_to_limit(row) for row in sample_limits()]
    console.print(f"Loaded {len(events)} diary entries and {len(limits)} limits", style="green")

    weather = InMemoryWeatherSource(
        WeatherDay(date=today - timedelta(days=n), pressure_mb=1013.0 - (n % 9) * 2.5)
        for n in range(1, 40)
    )
    service = ReportService(
        InMemoryEventSource(events),
        InMemoryLimitSource(limits),
        weather_source=weather,
        config=config,
    )

    for preset in (RangePreset.ONE_MONTH, RangePreset.THREE_MONTHS, RangePreset.ALL):
        report = await service.build_report(ReportRequest(preset=preset, page_size=5))
        effective = report.period.preset.value if report.period.preset else preset.value
        render_report(f"Preset {preset.value} (shown: {effective})", report)

    console.print(Panel("Medication limits", style="blue"))
    render_limits(report)

    console.print(Panel("Weather source unavailable", style="blue"))
    degraded = ReportService(
        InMemoryEventSource(events),
        InMemoryLimitSource(limits),
        weather_source=UnavailableWeatherSource(),
        config=config,
    )
    report = await degraded.build_report(ReportRequest(include_notes=False))
    console.print(
        f"Report built without weather: {report.weather is None}, "
        f"{report.period.documented_days} documented days",
        style="green",
    )

    service.sign_out()
    degraded.sign_out()


if __name__ == "__main__":
    try:
        asyncio.run(run_demo())
    except KeyboardInterrupt:
        console.print("\nDemo stopped by user", style="yellow")
