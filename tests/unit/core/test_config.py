"""
Tests for configuration management in `diary_core/config.py`.

Covers:
- Environment parsing and debug defaults
- Logging level coercion to the expected Literal
- Analytics settings from the environment (timezone, include today, notes)
- Timezone validation
- get_config cache behavior
- AppConfig validation (debug only allowed in development)
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from pydantic import ValidationError

from diary_core.config import (
    AnalyticsConfig,
    AppConfig,
    DataSourceConfig,
    LoggingConfig,
    configure_logging,
    get_config,
    load_config_from_env,
    reset_config_cache,
)

_ENV_VARS = (
    "ENVIRONMENT",
    "LOG_LEVEL",
    "REFERENCE_TIMEZONE",
    "INCLUDE_TODAY",
    "INCLUDE_NOTES",
    "NORMALIZATION_TARGET_DAYS",
    "REPORT_PAGE_SIZE",
    "FETCH_TIMEOUT_SECONDS",
    "WEATHER_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Start every test from an empty environment and a cold config cache."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config_cache()
    yield
    reset_config_cache()


def test_load_config_dev_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")

    config = load_config_from_env()

    assert config.environment == "development"
    assert config.debug is True
    assert config.logging.format == "console"
    assert config.analytics.reference_timezone == "Europe/Berlin"
    assert config.analytics.include_today is False
    assert config.analytics.normalization_target_days == 30
    assert config.analytics.include_notes_default is True


def test_production_uses_json_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "prod")

    config = load_config_from_env()

    assert config.environment == "production"
    assert config.debug is False
    assert config.logging.format == "json"


def test_environment_aliases(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "stage")
    assert load_config_from_env().environment == "staging"

    monkeypatch.setenv("ENVIRONMENT", "dev")
    assert load_config_from_env().environment == "development"


def test_logging_level_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")

    # Unknown level should coerce to INFO
    monkeypatch.setenv("LOG_LEVEL", "unknown")
    assert load_config_from_env().logging.level == "INFO"

    # Known level should pass through
    monkeypatch.setenv("LOG_LEVEL", "error")
    assert load_config_from_env().logging.level == "ERROR"


def test_analytics_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REFERENCE_TIMEZONE", "America/New_York")
    monkeypatch.setenv("INCLUDE_TODAY", "yes")
    monkeypatch.setenv("INCLUDE_NOTES", "false")
    monkeypatch.setenv("NORMALIZATION_TARGET_DAYS", "28")
    monkeypatch.setenv("REPORT_PAGE_SIZE", "25")

    analytics = load_config_from_env().analytics

    assert analytics.reference_timezone == "America/New_York"
    assert analytics.include_today is True
    assert analytics.include_notes_default is False
    assert analytics.normalization_target_days == 28
    assert analytics.default_page_size == 25


def test_data_source_timeouts_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FETCH_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("WEATHER_TIMEOUT_SECONDS", "0.5")

    data_sources = load_config_from_env().data_sources

    assert data_sources.fetch_timeout_seconds == 2.5
    assert data_sources.weather_timeout_seconds == 0.5


def test_invalid_timezone_fails_fast(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REFERENCE_TIMEZONE", "Mars/Olympus_Mons")

    with pytest.raises(ValidationError, match="Invalid timezone"):
        load_config_from_env()


def test_invalid_values_rejected() -> None:
    with pytest.raises(ValidationError):
        AnalyticsConfig(normalization_target_days=0)
    with pytest.raises(ValidationError):
        AnalyticsConfig(default_page_size=5000)
    with pytest.raises(ValidationError):
        DataSourceConfig(weather_timeout_seconds=0)


def test_get_config_cache() -> None:
    c1 = get_config()
    c2 = get_config()
    assert c1 is c2  # same object due to lru_cache

    reset_config_cache()
    assert get_config() is not c1


def test_app_config_debug_only_in_dev_validation() -> None:
    with pytest.raises(ValueError, match="debug mode is only allowed"):
        AppConfig(environment="production", debug=True, logging=LoggingConfig())


def test_configure_logging_accepts_both_formats() -> None:
    configure_logging(LoggingConfig(format="console", level="DEBUG"))
    configure_logging(LoggingConfig(format="json"))
