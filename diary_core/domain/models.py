"""
Domain models for the pain and medication diary.

These models represent the core business concepts and are framework-agnostic.
Input snapshots (events, limits, intakes) are frozen: the aggregation core reads
them, it never patches them. Derived models are rebuilt on every request and
never persisted.
"""

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SeverityLevel(str, Enum):
    """Ordered severity buckets. Order of declaration is clinical order."""

    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class PeriodType(str, Enum):
    """Trailing window a medication limit applies to."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class LimitStatus(str, Enum):
    """Outcome of comparing a usage count against a configured limit."""

    SAFE = "safe"
    WARNING = "warning"
    REACHED = "reached"
    EXCEEDED = "exceeded"


class RangePreset(str, Enum):
    """Symbolic report windows offered to the user."""

    ONE_MONTH = "1m"
    THREE_MONTHS = "3m"
    SIX_MONTHS = "6m"
    TWELVE_MONTHS = "12m"
    ALL = "all"
    CUSTOM = "custom"


# ─── Input snapshots ────────────────────────────────────────────────────────


class HealthEvent(BaseModel):
    """A single diary entry, severity already normalized to the 0-10 scale.

    ``severity=None`` means the field was never set for this entry. It is not
    the same as an explicit ``0.0``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    date: dt.date
    time: dt.time | None = None
    created_at: dt.datetime | None = None
    severity: float | None = Field(default=None, ge=0.0, le=10.0)
    medications: list[str] = Field(default_factory=list)
    notes: str | None = None
    aura: str | None = None
    pain_locations: list[str] = Field(default_factory=list)

    @property
    def has_severity(self) -> bool:
        return self.severity is not None

    @property
    def has_aura(self) -> bool:
        return bool(self.aura) and self.aura.strip().lower() not in {"none", "keine", "-"}


class MedicationIntake(BaseModel):
    """One intake of a named medication, from an event or a standalone record."""

    model_config = ConfigDict(frozen=True)

    medication_name: str = Field(min_length=1)
    date: dt.date
    time: dt.time | None = None
    event_id: str | None = None


class MedicationEffect(BaseModel):
    """User rating of how well a medication worked for one event (0-10)."""

    model_config = ConfigDict(frozen=True)

    event_id: str
    medication_name: str
    score: float = Field(ge=0.0, le=10.0)


class MedicationLimit(BaseModel):
    """User-configured maximum number of intakes per period."""

    model_config = ConfigDict(frozen=True)

    medication_name: str = Field(min_length=1)
    limit_count: int = Field(gt=0)
    period_type: PeriodType = PeriodType.MONTH
    is_active: bool = True


class WeatherDay(BaseModel):
    """Optional weather context for one calendar day."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    temperature_c: float | None = None
    pressure_mb: float | None = None
    pressure_change_24h: float | None = None
    humidity: float | None = None
    condition_text: str | None = None


# ─── Windows ────────────────────────────────────────────────────────────────


class CalendarWindow(BaseModel):
    """Inclusive range of calendar days in the reference timezone."""

    model_config = ConfigDict(frozen=True)

    start: dt.date
    end: dt.date
    # Set when a user-selected range had to be cut back to the effective end
    clamped: bool = False

    @model_validator(mode="after")
    def start_not_after_end(self) -> "CalendarWindow":
        if self.start > self.end:
            raise ValueError(f"window start {self.start} is after end {self.end}")
        return self

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: dt.date) -> bool:
        return self.start <= day <= self.end


# ─── Derived per-request models ─────────────────────────────────────────────


class DayRecord(BaseModel):
    """Aggregated view of one calendar day."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    documented: bool
    representative_severity: float | None = None
    entry_count: int = Field(default=0, ge=0)
    medications: list[str] = Field(default_factory=list)
    latest_event_id: str | None = None


class BucketCounts(BaseModel):
    """Day counts per severity bucket, plus days that were not documented."""

    none: int = 0
    mild: int = 0
    moderate: int = 0
    severe: int = 0
    undocumented: int = 0

    def total(self) -> int:
        return self.none + self.mild + self.moderate + self.severe + self.undocumented


class Distribution(BaseModel):
    """Calendar-day classification over a window with summary statistics.

    ``avg_daily_max``, ``p25`` and ``p75`` are rounded to one decimal,
    half away from zero.
    """

    calendar_days: int
    documented_days: int
    distribution: BucketCounts
    avg_daily_max: float
    p25: float
    p75: float
    days_with_burden: int
    burden_per_30: float
    all_documented_zero: bool
    has_documentation: bool


class LimitMessage(BaseModel):
    """Structured banner text for a limit that is not safe."""

    title: str
    status_line: str
    detail_line: str


class LimitEvaluation(BaseModel):
    """A configured limit checked against the current usage."""

    medication_name: str
    period_type: PeriodType
    limit_count: int
    current_count: int
    status: LimitStatus
    remaining: int
    over_by: int
    message: LimitMessage | None = None


# ─── Report payload ─────────────────────────────────────────────────────────


class ReportPeriod(BaseModel):
    from_date: dt.date
    to_date: dt.date
    days_in_range: int
    documented_days: int
    documentation_gap_days: int
    entries_count: int
    # Consecutive documented days ending at to_date
    documented_streak_days: int = 0
    # True when a custom range reached past the effective end and was cut back
    range_clamped: bool = False
    # Preset the window was built from, after falling back for short histories
    preset: RangePreset | None = None
    available_presets: list[RangePreset] = Field(default_factory=list)


class CoreKPIs(BaseModel):
    """Raw counts over the report window."""

    pain_days: int
    severe_days: int
    acute_med_days: int
    acute_intakes: int
    medication_days: int
    aura_days: int
    avg_intensity: float


class NormalizedKPIs(BaseModel):
    """Raw counts rescaled to the reference period (30 days by default)."""

    target_days: int
    pain_days: float
    severe_days: float
    acute_med_days: float
    acute_intakes: float
    medication_days: float


class MedicationStat(BaseModel):
    name: str
    total_intakes: int
    days_used: int
    avg_per_30: float
    avg_effectiveness: float | None = None
    effectiveness_count: int = 0
    is_acute_class: bool = False


class ReportEntry(BaseModel):
    """Event as shown in listings. ``note`` is None when notes are redacted."""

    id: str
    date: dt.date
    time: dt.time | None = None
    created_at: dt.datetime | None = None
    severity: float | None = None
    severity_level: SeverityLevel | None = None
    medications: list[str] = Field(default_factory=list)
    note: str | None = None
    aura: str | None = None
    pain_locations: list[str] = Field(default_factory=list)


class DiaryReport(BaseModel):
    """Complete payload consumed by charts, PDF export and clinician views."""

    schema_version: str
    generated_at: dt.datetime
    timezone: str
    period: ReportPeriod
    kpis: CoreKPIs
    normalized_kpis: NormalizedKPIs
    medications: list[MedicationStat]
    distribution: Distribution
    location_frequency: dict[str, int]
    overuse_warning: bool
    limit_evaluations: list[LimitEvaluation] = Field(default_factory=list)
    weather: list[WeatherDay] | None = None
    entries: list[ReportEntry]
    entries_total: int
    entries_page: int
    entries_page_size: int
