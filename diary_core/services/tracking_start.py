"""
Tracking start date, cached explicitly.

The start of tracking changes at most once per account, so it is worth caching,
but the cache is an object the caller owns and resets (on sign-out), not state
hidden inside the aggregation code.
"""

from collections.abc import Awaitable, Callable, Iterable
from datetime import date

import structlog

from diary_core.domain.models import HealthEvent

logger = structlog.get_logger(__name__)

StartDateLoader = Callable[[], Awaitable[date | None]]

_UNSET = object()


def derive_tracking_start(events: Iterable[HealthEvent]) -> date | None:
    """Earliest day carrying an explicit severity value."""
    return min((event.date for event in events if event.has_severity), default=None)


class TrackingStartCache:
    """
    Memoizes the tracking start date.

    Lookup order: cached value, persisted value from ``loader``, derivation from
    the events at hand. Call ``reset()`` whenever the account changes.
    """

    def __init__(self, loader: StartDateLoader | None = None) -> None:
        self._loader = loader
        self._value: object = _UNSET
        self.logger = logger.bind(component="tracking_start_cache")

    @property
    def is_cached(self) -> bool:
        return self._value is not _UNSET

    async def get(self, events: Iterable[HealthEvent] = ()) -> date | None:
        if self._value is not _UNSET:
            return self._value  # type: ignore[return-value]

        start: date | None = None
        if self._loader is not None:
            try:
                start = await self._loader()
            except Exception as e:
                # Falls back to derivation; the next call retries the loader
                self.logger.warning("tracking_start_load_failed", error=str(e))
                return derive_tracking_start(events)

        if start is None:
            start = derive_tracking_start(events)
            if start is None:
                # Nothing tracked yet: do not cache, the first entry will define it
                return None

        self._value = start
        self.logger.debug("tracking_start_cached", start=start.isoformat())
        return start

    def set(self, start: date) -> None:
        """Record a start date that was just persisted elsewhere."""
        if self._value is _UNSET:
            self._value = start

    def reset(self) -> None:
        """Invalidate the cached value (e.g. on sign-out)."""
        self._value = _UNSET
        self.logger.debug("tracking_start_cache_reset")
