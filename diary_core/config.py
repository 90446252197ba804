"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- One place for decisions every consumer must share (reference timezone,
  whether today counts towards rates)
"""

import logging
import os
import sys
from functools import lru_cache
from typing import Literal, cast
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()


class AnalyticsConfig(BaseModel):
    """Settings shared by every report consumer (app charts, PDF, clinician view)."""

    reference_timezone: str = Field(
        default="Europe/Berlin", description="IANA zone that defines calendar days"
    )
    include_today: bool = Field(
        default=False, description="Count today (still incomplete) towards rate metrics"
    )
    normalization_target_days: int = Field(
        default=30, gt=0, description="Reference period for normalized KPIs"
    )
    default_page_size: int = Field(
        default=100, gt=0, le=1000, description="Entries per report page"
    )
    include_notes_default: bool = Field(
        default=True, description="Include free-text notes in report entries"
    )

    @field_validator("reference_timezone")
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Invalid timezone '{v}'. Use IANA timezone identifiers.") from e
        return v


class DataSourceConfig(BaseModel):
    """Timeouts for the fetch step that precedes every computation."""

    fetch_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Timeout for events and limits"
    )
    weather_timeout_seconds: float = Field(
        default=3.0, gt=0.0, description="Timeout for optional weather enrichment"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    data_sources: DataSourceConfig = Field(default_factory=DataSourceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
    v = val.strip().lower()
    if v in {"dev", "development"}:
        return "development"
    if v in {"stage", "staging"}:
        return "staging"
    return "production"


def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
    v = val.strip().upper()
    return cast(
        Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
    )


def _parse_bool(val: str | None, default: bool) -> bool:
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    analytics_config = AnalyticsConfig(
        reference_timezone=os.getenv("REFERENCE_TIMEZONE", "Europe/Berlin"),
        include_today=_parse_bool(os.getenv("INCLUDE_TODAY"), False),
        normalization_target_days=int(os.getenv("NORMALIZATION_TARGET_DAYS", "30")),
        default_page_size=int(os.getenv("REPORT_PAGE_SIZE", "100")),
        include_notes_default=_parse_bool(os.getenv("INCLUDE_NOTES"), True),
    )

    data_source_config = DataSourceConfig(
        fetch_timeout_seconds=float(os.getenv("FETCH_TIMEOUT_SECONDS", "10.0")),
        weather_timeout_seconds=float(os.getenv("WEATHER_TIMEOUT_SECONDS", "3.0")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        analytics=analytics_config,
        data_sources=data_source_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def reset_config_cache() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    get_config.cache_clear()


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Configure structlog for the whole process (JSON in production, console in dev)."""
    config = config or get_config().logging
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=config.level)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if config.format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nANALYTICS")
    print(f"Reference timezone: {config.analytics.reference_timezone}")
    print(f"Include today: {config.analytics.include_today}")
    print(f"Normalization target: {config.analytics.normalization_target_days} days")

    print("\nDATA SOURCES")
    print(f"Fetch timeout: {config.data_sources.fetch_timeout_seconds}s")
    print(f"Weather timeout: {config.data_sources.weather_timeout_seconds}s")


if __name__ == "__main__":
    print_config_summary()
