"""
Report service: a single fetch-then-compute step.

1. Resolve the window in the reference timezone, falling back to the default
   preset when the documented history is too short for the requested one
2. Fetch events, intakes, effect ratings and limits concurrently
3. Fetch optional weather enrichment (never allowed to fail the report)
4. Hand the immutable snapshot to the pure report assembly

Timeouts and retries belong here, never inside the aggregation core.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, date, datetime, timedelta
from typing import Any

import structlog
from pydantic import BaseModel, Field

from diary_core.config import AppConfig, get_config
from diary_core.domain.dates import (
    available_presets,
    days_between_inclusive,
    effective_end,
    resolve,
    today_in_zone,
    validate_preset,
)
from diary_core.domain.models import (
    CalendarWindow,
    DiaryReport,
    HealthEvent,
    RangePreset,
    WeatherDay,
)
from diary_core.services.data_sources import (
    DataSourceError,
    EventSource,
    LimitSource,
    ReportDataUnavailableError,
    Result,
    WeatherSource,
)
from diary_core.services.limits import PERIOD_DAYS
from diary_core.services.report import assemble_report
from diary_core.services.tracking_start import TrackingStartCache

logger = structlog.get_logger(__name__)

# Longest trailing period a limit can look back over
_LIMIT_LOOKBACK_DAYS = max(PERIOD_DAYS.values())


class ReportRequest(BaseModel):
    """What the caller wants to see. Unset fields fall back to configuration."""

    preset: RangePreset = RangePreset.ONE_MONTH
    custom_from: date | None = None
    custom_to: date | None = None
    include_notes: bool | None = None
    include_weather: bool = True
    page: int = Field(default=1, ge=1)
    page_size: int | None = Field(default=None, gt=0)


class ReportService:
    """
    Orchestrates data fetching and report assembly.

    Design principles:
    - Required data (events, limits) missing -> ReportDataUnavailableError
    - Optional data (weather) missing -> report without it, warning logged
    - Observable (structured logging for every source outcome)
    """

    def __init__(
        self,
        event_source: EventSource,
        limit_source: LimitSource,
        weather_source: WeatherSource | None = None,
        tracking_cache: TrackingStartCache | None = None,
        config: AppConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.event_source = event_source
        self.limit_source = limit_source
        self.weather_source = weather_source
        self.tracking_cache = tracking_cache or TrackingStartCache()
        self.config = config or get_config()
        self._clock = clock or (lambda: datetime.now(UTC))
        self.logger = logger.bind(component="report_service")

    def reference_today(self) -> date:
        return today_in_zone(self.config.analytics.reference_timezone, self._clock())

    def sign_out(self) -> None:
        """Drop account-scoped caches."""
        self.tracking_cache.reset()

    async def _fetch(
        self, name: str, call: Awaitable[Result[Any, Exception]], timeout: float
    ) -> Result[Any, Exception]:
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except TimeoutError:
            self.logger.warning("source_fetch_timeout", source=name, timeout_seconds=timeout)
            return Result.err(DataSourceError(f"{name} timed out after {timeout}s"))
        except Exception as e:
            self.logger.exception("unexpected_source_fetch_error", source=name, error=str(e))
            return Result.err(e)

    def _required(self, name: str, result: Result[Any, Exception]) -> Any:
        if result.is_err():
            error = result.unwrap_err()
            self.logger.error("required_source_failed", source=name, error=str(error))
            raise ReportDataUnavailableError(f"could not load {name}: {error}") from error
        return result.unwrap()

    async def _fetch_weather(self, window: CalendarWindow) -> list[WeatherDay] | None:
        if self.weather_source is None:
            return None
        result = await self._fetch(
            self.weather_source.source_name,
            self.weather_source.fetch_weather(window),
            self.config.data_sources.weather_timeout_seconds,
        )
        if result.is_err():
            self.logger.warning(
                "weather_unavailable", source=self.weather_source.source_name,
                error=str(result.unwrap_err()),
            )
            return None
        return result.unwrap()

    def _fixed_window(
        self, request: ReportRequest, preset: RangePreset, today: date
    ) -> CalendarWindow | None:
        """Window that can be resolved without looking at events (all presets but ``all``)."""
        if preset is RangePreset.ALL:
            return None
        return resolve(
            preset,
            today,
            custom_from=request.custom_from,
            custom_to=request.custom_to,
            include_today=self.config.analytics.include_today,
        )

    def _all_window(
        self, events: list[HealthEvent], tracking_start: date | None, today: date
    ) -> CalendarWindow:
        earliest = min((e.date for e in events), default=None)
        return resolve(
            RangePreset.ALL,
            today,
            tracking_start=tracking_start,
            earliest_event=earliest,
            include_today=self.config.analytics.include_today,
        )

    def _effective_preset(
        self, requested: RangePreset, tracking_start: date | None, today: date
    ) -> tuple[RangePreset, list[RangePreset]]:
        """Requested preset, or the default one when the history cannot fill it."""
        last_day = effective_end(today, self.config.analytics.include_today)
        span = days_between_inclusive(tracking_start, last_day) if tracking_start else 0
        preset = validate_preset(requested, span)
        if preset is not requested:
            self.logger.info(
                "preset_fallback",
                requested=requested.value,
                effective=preset.value,
                documentation_span_days=span,
            )
        return preset, available_presets(span)

    async def build_report(self, request: ReportRequest | None = None) -> DiaryReport:
        request = request or ReportRequest()
        analytics = self.config.analytics
        timeout = self.config.data_sources.fetch_timeout_seconds
        today = self.reference_today()

        # A known tracking start lets the window be fixed before fetching
        tracking_start = await self.tracking_cache.get()
        preset: RangePreset | None = None
        offered: list[RangePreset] = []
        window: CalendarWindow | None = None
        if tracking_start is not None:
            preset, offered = self._effective_preset(request.preset, tracking_start, today)
            window = self._fixed_window(request, preset, today)

        since = (
            min(window.start, today - timedelta(days=_LIMIT_LOOKBACK_DAYS - 1))
            if window is not None
            else None
        )

        events_source = self.event_source.source_name
        async with asyncio.TaskGroup() as task_group:
            events_task = task_group.create_task(
                self._fetch(events_source, self.event_source.fetch_events(since), timeout)
            )
            intakes_task = task_group.create_task(
                self._fetch(events_source, self.event_source.fetch_intakes(since), timeout)
            )
            effects_task = task_group.create_task(
                self._fetch(events_source, self.event_source.fetch_effects(), timeout)
            )
            limits_task = task_group.create_task(
                self._fetch(
                    self.limit_source.source_name, self.limit_source.fetch_limits(), timeout
                )
            )

        events = self._required("events", events_task.result())
        intakes = self._required("intakes", intakes_task.result())
        effects = self._required("medication effects", effects_task.result())
        limits = self._required("medication limits", limits_task.result())

        if preset is None:
            tracking_start = await self.tracking_cache.get(events)
            preset, offered = self._effective_preset(request.preset, tracking_start, today)
            window = self._fixed_window(request, preset, today)
        if window is None:
            window = self._all_window(events, tracking_start, today)

        weather = await self._fetch_weather(window) if request.include_weather else None

        include_notes = (
            request.include_notes
            if request.include_notes is not None
            else analytics.include_notes_default
        )
        report = assemble_report(
            events,
            window,
            limits=limits,
            intakes=intakes,
            effects=effects,
            weather=weather,
            as_of=today,
            include_notes=include_notes,
            page=request.page,
            page_size=request.page_size or analytics.default_page_size,
            timezone=analytics.reference_timezone,
            target_days=analytics.normalization_target_days,
            generated_at=self._clock(),
            preset=preset,
            available_presets=offered,
        )

        self.logger.info(
            "report_built",
            preset=preset.value,
            days_in_range=report.period.days_in_range,
            range_clamped=report.period.range_clamped,
            weather_included=report.weather is not None,
            limits_flagged=sum(1 for e in report.limit_evaluations if e.message is not None),
        )
        return report
