"""Tests for environment-driven settings."""

import pytest

from riskscope.infrastructure.config import Settings
from riskscope.infrastructure.postgrest.postgrest_adapter import PostgRESTConfig

ENV_VARS = [
    "RISKSCOPE_STORE",
    "POSTGREST_URL",
    "POSTGREST_API_KEY",
    "POSTGREST_TIMEOUT",
    "RISKSCOPE_CONVERSION_RATE",
    "RISKSCOPE_REVENUE_WINDOW_MONTHS",
    "RISKSCOPE_ADMIN_CONFIRMED_SEVERITY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test from an empty configuration."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    """Without environment variables the memory store and default tunables are used."""
    settings = Settings.from_env()

    assert settings.store == "memory"
    assert settings.postgrest is None
    assert settings.assessment.conversion_rate == 0.05
    assert settings.assessment.revenue_window_months == 3
    assert settings.risk.admin_confirmed_severity == 5
    assert settings.store_config() == {}


def test_postgrest_settings(monkeypatch):
    """PostgREST connection settings are read when a URL is set."""
    monkeypatch.setenv("RISKSCOPE_STORE", "PostgREST")
    monkeypatch.setenv("POSTGREST_URL", "https://project.supabase.co/rest/v1")
    monkeypatch.setenv("POSTGREST_API_KEY", "secret")
    monkeypatch.setenv("POSTGREST_TIMEOUT", "2.5")

    settings = Settings.from_env()

    assert settings.store == "postgrest"
    assert settings.postgrest == PostgRESTConfig(
        base_url="https://project.supabase.co/rest/v1", api_key="secret", timeout=2.5
    )
    assert settings.store_config() == {"config": settings.postgrest}


def test_tunables_from_env(monkeypatch):
    """Assessment and risk tunables can be overridden."""
    monkeypatch.setenv("RISKSCOPE_CONVERSION_RATE", "0.02")
    monkeypatch.setenv("RISKSCOPE_REVENUE_WINDOW_MONTHS", "6")
    monkeypatch.setenv("RISKSCOPE_ADMIN_CONFIRMED_SEVERITY", "8")

    settings = Settings.from_env()

    assert settings.assessment.conversion_rate == 0.02
    assert settings.assessment.revenue_window_months == 6
    assert settings.risk.admin_confirmed_severity == 8


def test_invalid_tunable_is_rejected(monkeypatch):
    """Out-of-range tunables fail at startup."""
    monkeypatch.setenv("RISKSCOPE_CONVERSION_RATE", "1.5")

    with pytest.raises(ValueError):
        Settings.from_env()
