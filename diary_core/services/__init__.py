"""
Core services for the application.

This package contains the aggregation services built on the domain
classifiers, the report assembly, and the async fetch step feeding them.
"""

from .data_sources import (
    DataSourceError,
    EventSource,
    InMemoryEventSource,
    InMemoryLimitSource,
    InMemoryWeatherSource,
    LimitSource,
    ReportDataUnavailableError,
    Result,
    WeatherSource,
)
from .report_service import ReportRequest, ReportService
from .tracking_start import TrackingStartCache

__all__ = [
    "DataSourceError",
    "EventSource",
    "InMemoryEventSource",
    "InMemoryLimitSource",
    "InMemoryWeatherSource",
    "LimitSource",
    "ReportDataUnavailableError",
    "ReportRequest",
    "ReportService",
    "Result",
    "TrackingStartCache",
    "WeatherSource",
]
