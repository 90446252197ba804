"""
Diary-row adapter: stored rows in, canonical domain models out.

Rows come from the persistence layer as plain dicts, shaped like the
``pain_entries`` / ``medication_effects`` / ``medication_limits`` tables:

- ``selected_date`` / ``selected_time`` / ``timestamp_created``
- severity either numeric (``severity_score`` / ``severity``) or, in rows
  written by older app versions, an ordinal label in ``pain_level``
- ``medications`` (list of names), ``aura_type``, ``pain_locations``

Severity encodings are converted through a tagged variant before anything
reaches the aggregation core, so the core only ever sees ``float | None``.

Malformed dates are an upstream defect. Rows carrying them are skipped and
logged here, not repaired.
"""

from collections.abc import Iterable, Mapping
from datetime import date, datetime, time
from typing import Annotated, Any, Literal

import structlog
from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from diary_core.domain.models import HealthEvent, MedicationEffect, MedicationLimit, PeriodType
from diary_core.domain.severity import LABEL_ALIASES, label_to_score

logger = structlog.get_logger(__name__)

SEVERITY_KEYS = ("severity_score", "severity", "pain_level")

EFFECT_RATING_SCORES: dict[str, float] = {
    "none": 0.0,
    "poor": 2.5,
    "moderate": 5.0,
    "good": 7.5,
    "very_good": 10.0,
}


# ─── Severity tagged variant ────────────────────────────────────────────────


class NumericSeverity(BaseModel):
    """Severity stored on the 0-10 scale."""

    kind: Literal["numeric"] = "numeric"
    value: float = Field(ge=0.0, le=10.0)

    def to_score(self) -> float | None:
        return self.value


class OrdinalSeverity(BaseModel):
    """Severity stored as a label by older app versions."""

    kind: Literal["ordinal"] = "ordinal"
    label: str

    @field_validator("label")
    def known_label(cls, v: str) -> str:
        normalized = v.strip().lower()
        if normalized not in LABEL_ALIASES:
            raise ValueError(f"Unknown severity label '{v}'")
        return normalized

    def to_score(self) -> float | None:
        return label_to_score(self.label)


class MissingSeverity(BaseModel):
    """The entry never had a severity set."""

    kind: Literal["missing"] = "missing"

    def to_score(self) -> float | None:
        return None


SeverityInput = Annotated[
    NumericSeverity | OrdinalSeverity | MissingSeverity, Field(discriminator="kind")
]

severity_adapter = TypeAdapter(SeverityInput)


def parse_severity(raw: Any) -> NumericSeverity | OrdinalSeverity | MissingSeverity:
    """Classify a stored severity value into its variant.

    Accepts numbers, numeric strings, ordinal labels and already-tagged dicts
    (``{"kind": "ordinal", "label": "mild"}``). Raises ValueError for booleans,
    unknown labels and numbers outside 0-10.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return MissingSeverity()
    if isinstance(raw, Mapping):
        return severity_adapter.validate_python(raw)
    if isinstance(raw, bool):
        raise ValueError(f"Severity must be a number or label, got {raw!r}")
    if isinstance(raw, int | float):
        return NumericSeverity(value=raw)
    if isinstance(raw, str):
        text = raw.strip()
        try:
            value = float(text)
        except ValueError:
            return OrdinalSeverity(label=text)
        return NumericSeverity(value=value)
    raise ValueError(f"Unsupported severity type {type(raw).__name__}")


def _raw_severity(row: Mapping[str, Any]) -> Any:
    for key in SEVERITY_KEYS:
        value = row.get(key)
        if value is not None and value != "":
            return value
    return None


# ─── Field parsing ──────────────────────────────────────────────────────────


def _parse_created_at(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _parse_date(row: Mapping[str, Any], created_at: datetime | None) -> date:
    value = row.get("selected_date")
    if isinstance(value, date):
        return value
    if value:
        return date.fromisoformat(str(value))
    if created_at is not None:
        return created_at.date()
    raise ValueError("Row has neither selected_date nor timestamp_created")


def _parse_time(value: Any) -> time | None:
    if not value:
        return None
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value))


def _names(values: Any) -> list[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


# ─── Row converters ─────────────────────────────────────────────────────────


def row_to_event(row: Mapping[str, Any]) -> HealthEvent:
    """Convert one stored diary row into a HealthEvent."""
    if row.get("id") is None:
        raise ValueError("Row is missing 'id'")

    created_at = _parse_created_at(row.get("timestamp_created"))
    locations = _names(row.get("pain_locations")) or _names(row.get("pain_location"))

    return HealthEvent(
        id=str(row["id"]),
        date=_parse_date(row, created_at),
        time=_parse_time(row.get("selected_time")),
        created_at=created_at,
        severity=parse_severity(_raw_severity(row)).to_score(),
        medications=_names(row.get("medications")),
        notes=row.get("notes") or None,
        aura=row.get("aura_type") or None,
        pain_locations=locations,
    )


def rows_to_events(rows: Iterable[Mapping[str, Any]]) -> list[HealthEvent]:
    """
    Convert stored rows, skipping invalid ones.

    Each skipped row is logged with its index and the reason.
    """
    events: list[HealthEvent] = []
    skipped = 0
    for idx, row in enumerate(rows):
        try:
            events.append(row_to_event(row))
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            skipped += 1
            logger.warning("diary_row_skipped", index=idx, row_id=row.get("id"), error=str(e))

    if skipped:
        logger.info("diary_rows_converted", converted=len(events), skipped=skipped)
    return events


def effect_rating_to_score(rating: str | None) -> float | None:
    if not rating:
        return None
    return EFFECT_RATING_SCORES.get(rating.strip().lower())


def row_to_effect(row: Mapping[str, Any]) -> MedicationEffect | None:
    """Effect rating for one medication on one entry; None if the row carries no rating."""
    score = row.get("effect_score")
    if score is None:
        score = effect_rating_to_score(row.get("effect_rating"))
    if score is None:
        return None
    return MedicationEffect(
        event_id=str(row["entry_id"]),
        medication_name=str(row["med_name"]),
        score=score,
    )


def row_to_limit(row: Mapping[str, Any]) -> MedicationLimit:
    return MedicationLimit(
        medication_name=str(row["medication_name"]),
        limit_count=int(row["limit_count"]),
        period_type=PeriodType(row.get("period_type") or PeriodType.MONTH.value),
        is_active=bool(row.get("is_active", True)),
    )
