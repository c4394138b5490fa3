"""Configuration management for catcher."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


ROOT = Path(__file__).resolve().parents[1]


class CatcherSettings(BaseSettings):
    """Process-wide defaults for caches and their logging."""

    default_ttl_ms: float | None = None
    log_level: str = "INFO"
    json_logs: bool = True
    instrument_fetchers: bool = False

    @field_validator("default_ttl_ms")
    @classmethod
    def validate_ttl(cls, ttl: float | None) -> float | None:
        if ttl is not None and ttl <= 0:
            raise ValueError("CATCHER_DEFAULT_TTL_MS must be a positive number of milliseconds")
        return ttl

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value!r}")
        return level

    model_config = {
        "env_prefix": "CATCHER_",
        "env_file": ROOT / ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache(maxsize=1)
def get_settings() -> CatcherSettings:
    return CatcherSettings()
