from __future__ import annotations

import asyncio

import pytest
from pydantic import ValidationError
from structlog.testing import capture_logs

from catcher import Catcher, CatcherSettings, get_settings


def test_settings_defaults() -> None:
    settings = get_settings()
    assert settings.default_ttl_ms is None
    assert settings.log_level == "INFO"
    assert settings.json_logs is True


def test_settings_read_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("CATCHER_DEFAULT_TTL_MS", "1500")
    monkeypatch.setenv("CATCHER_LOG_LEVEL", " debug ")
    monkeypatch.setenv("CATCHER_JSON_LOGS", "false")
    get_settings.cache_clear()

    settings = get_settings()
    assert settings.default_ttl_ms == 1500
    assert settings.log_level == "DEBUG"
    assert settings.json_logs is False


def test_settings_are_cached() -> None:
    assert get_settings() is get_settings()


@pytest.mark.parametrize("ttl", [0, -10])
def test_non_positive_default_ttl_rejected(ttl: float) -> None:
    with pytest.raises(ValidationError):
        CatcherSettings(default_ttl_ms=ttl)


def test_unknown_log_level_rejected() -> None:
    with pytest.raises(ValidationError):
        CatcherSettings(log_level="chatty")


def test_from_settings_applies_default_ttl(manual_timer) -> None:
    async def fetcher() -> int:
        return 1

    settings = CatcherSettings(default_ttl_ms=250)
    catcher = Catcher.from_settings(fetcher, settings=settings, init_data=0, timer=manual_timer)
    assert manual_timer.pending[0].due_ms == 250

    manual_timer.advance(250)
    assert catcher.get_current_state() == "expired"


def test_from_settings_explicit_ttl_wins(manual_timer, monkeypatch) -> None:
    monkeypatch.setenv("CATCHER_DEFAULT_TTL_MS", "250")
    get_settings.cache_clear()

    async def fetcher() -> int:
        return 1

    async def run() -> None:
        catcher = Catcher.from_settings(fetcher, ttl=40, timer=manual_timer)
        assert await catcher.fetch() == 1
        assert manual_timer.pending[0].due_ms == 40

    asyncio.run(run())


def test_from_settings_without_ttl_never_arms(manual_timer) -> None:
    async def fetcher() -> int:
        return 1

    Catcher.from_settings(fetcher, init_data=0, timer=manual_timer)
    assert manual_timer.handles == []


def test_from_settings_enables_instrumentation(monkeypatch) -> None:
    monkeypatch.setenv("CATCHER_INSTRUMENT_FETCHERS", "true")
    get_settings.cache_clear()

    async def source() -> int:
        return 5

    async def run() -> list[dict]:
        catcher = Catcher.from_settings(source)
        with capture_logs() as logs:
            assert await catcher.fetch() == 5
        return logs

    assert "fetch.complete" in [entry["event"] for entry in asyncio.run(run())]
