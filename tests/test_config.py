from __future__ import annotations

from datetime import datetime

import pytest

from content_api.core.clock import FixedClock
from content_api.core.config import Settings


def test_settings_read_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTENT_API_TIMEZONE", "UTC")
    monkeypatch.setenv("CONTENT_API_EXPIRATION_RUN_AT", "01:30")
    monkeypatch.setenv("CONTENT_API_RELATED_VACANCIES_DEFAULT_LIMIT", "4")
    monkeypatch.setenv("TIMEZONE", "Europe/Paris")

    settings = Settings()

    assert settings.timezone == "UTC"
    assert settings.expiration_run_at == "01:30"
    assert settings.related_vacancies_default_limit == 4


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CONTENT_API_TIMEZONE", raising=False)
    monkeypatch.delenv("CONTENT_API_IDENTITY_BASE_URL", raising=False)

    settings = Settings()

    assert settings.timezone == "Asia/Jakarta"
    assert settings.expiration_run_at == "00:00"
    assert settings.related_vacancies_default_limit == 2
    assert settings.identity_base_url is None


def test_fixed_clock_defaults_naive_times_to_utc() -> None:
    clock = FixedClock(datetime(2025, 1, 15, 12, 0))

    assert clock.now().tzinfo is not None
    assert clock.today().isoformat() == "2025-01-15"
