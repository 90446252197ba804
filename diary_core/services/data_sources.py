"""
Where the aggregation core gets its data from.

Storage lives outside the core: the report service talks to sources through
the protocols below and never learns whether rows come from a database, a
diary export or a test fixture. The in-memory sources serve tests, the demo
and precomputed snapshots.
"""

from collections.abc import Iterable
from datetime import date
from typing import Generic, Protocol, TypeVar

import structlog

from diary_core.domain.models import (
    CalendarWindow,
    HealthEvent,
    MedicationEffect,
    MedicationIntake,
    MedicationLimit,
    WeatherDay,
)

logger = structlog.get_logger(__name__)

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Outcome of one source fetch.

    Sources return expected failures (a timeout, an unreachable table, a
    provider answering 503) as values. The report service then decides per
    source whether a failure is fatal: missing events or limits abort the
    report, missing weather is dropped. ``Result.ok([])`` is the normal answer
    for an account with no rows, so only the error side decides the outcome.
    """

    __slots__ = ("_value", "_error")

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("a fetch outcome carries rows or an error, not both")
        self._value = value
        self._error = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        if error is None:
            raise ValueError("a failed fetch needs the error that caused it")
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return not self.is_ok()

    def unwrap(self) -> ValueT:
        """The fetched rows; re-raises the fetch error on failure."""
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]

    def unwrap_or(self, default: ValueT) -> ValueT:
        if self._error is not None:
            return default
        return self._value  # type: ignore[return-value]

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("fetch succeeded, there is no error to return")
        return self._error


class DataSourceError(Exception):
    """A source could not deliver its data."""


class ReportDataUnavailableError(Exception):
    """Data required for a report (events or limits) could not be loaded."""


class EventSource(Protocol):
    """Supplies diary events, standalone intakes and effect ratings."""

    source_name: str

    async def fetch_events(self, since: date | None = None) -> Result[list[HealthEvent], Exception]:
        ...

    async def fetch_intakes(
        self, since: date | None = None
    ) -> Result[list[MedicationIntake], Exception]:
        ...

    async def fetch_effects(self) -> Result[list[MedicationEffect], Exception]:
        ...


class LimitSource(Protocol):
    """Supplies the user's medication limit configuration."""

    source_name: str

    async def fetch_limits(self) -> Result[list[MedicationLimit], Exception]:
        ...


class WeatherSource(Protocol):
    """Optional enrichment. Absence or failure must never fail a report."""

    source_name: str

    async def fetch_weather(self, window: CalendarWindow) -> Result[list[WeatherDay], Exception]:
        ...


class InMemoryEventSource:
    """Event source over an in-memory snapshot."""

    def __init__(
        self,
        events: Iterable[HealthEvent] = (),
        intakes: Iterable[MedicationIntake] = (),
        effects: Iterable[MedicationEffect] = (),
        source_name: str = "memory-events",
    ) -> None:
        self.source_name = source_name
        self._events = list(events)
        self._intakes = list(intakes)
        self._effects = list(effects)
        self.logger = logger.bind(source=source_name)

    async def fetch_events(self, since: date | None = None) -> Result[list[HealthEvent], Exception]:
        events = [e for e in self._events if since is None or e.date >= since]
        self.logger.debug("events_fetched", count=len(events))
        return Result.ok(events)

    async def fetch_intakes(
        self, since: date | None = None
    ) -> Result[list[MedicationIntake], Exception]:
        return Result.ok([i for i in self._intakes if since is None or i.date >= since])

    async def fetch_effects(self) -> Result[list[MedicationEffect], Exception]:
        return Result.ok(list(self._effects))


class InMemoryLimitSource:
    """Limit source over an in-memory list."""

    def __init__(
        self, limits: Iterable[MedicationLimit] = (), source_name: str = "memory-limits"
    ) -> None:
        self.source_name = source_name
        self._limits = list(limits)

    async def fetch_limits(self) -> Result[list[MedicationLimit], Exception]:
        return Result.ok(list(self._limits))


class InMemoryWeatherSource:
    """Weather source over an in-memory list of days."""

    def __init__(
        self, days: Iterable[WeatherDay] = (), source_name: str = "memory-weather"
    ) -> None:
        self.source_name = source_name
        self._days = list(days)

    async def fetch_weather(self, window: CalendarWindow) -> Result[list[WeatherDay], Exception]:
        return Result.ok([d for d in self._days if window.contains(d.date)])
