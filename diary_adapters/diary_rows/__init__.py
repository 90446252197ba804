"""Ingestion of raw diary rows as they come out of the persistence layer."""

from .domain import (
    MissingSeverity,
    NumericSeverity,
    OrdinalSeverity,
    effect_rating_to_score,
    parse_severity,
    row_to_effect,
    row_to_event,
    row_to_limit,
    rows_to_events,
)

__all__ = [
    "MissingSeverity",
    "NumericSeverity",
    "OrdinalSeverity",
    "effect_rating_to_score",
    "parse_severity",
    "row_to_effect",
    "row_to_event",
    "row_to_limit",
    "rows_to_events",
]
