"""Configuration settings for IronLog with caching utilities."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from threading import RLock
from typing import Any

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """A required configuration value is missing or invalid."""

    def __init__(self, setting: str, message: str | None = None) -> None:
        super().__init__(message or f"{setting} is not set")
        self.setting = setting


class Settings(BaseSettings):
    """IronLog application settings"""

    model_config = SettingsConfigDict(
        env_file=[".env.test", ".env"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Intervals.icu
    intervals_athlete_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "intervals_athlete_id", "vite_intervals_athlete_id"
        ),
    )
    intervals_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("intervals_api_key", "vite_intervals_api_key"),
    )
    intervals_base_url: str = "https://intervals.icu/api/v1"
    intervals_user_agent: str = "IronLog-Sync/1.0"
    intervals_timeout: int = 30

    # Sync windows
    activities_oldest: date = date(2025, 11, 20)
    activities_limit: int = Field(default=50, gt=0)
    wellness_lookback_days: int = Field(default=30, ge=0)

    # Route fetching: pause between map requests (seconds)
    route_fetch_delay: float = Field(default=0.25, ge=0.2, le=0.25)

    # Local persistence
    map_cache_path: Path = Path("data/map-cache.json")
    store_path: Path = Path("data/store.json")

    # Admin actions
    admin_secret: SecretStr | None = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"
    log_dir: Path = Path("logs")

    # Environment
    environment: str = "personal"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode"""
        return self.environment.lower() in ["testing", "test"]

    def require_intervals_credentials(self) -> tuple[str, str]:
        """Return ``(athlete_id, api_key)`` or raise naming the missing value."""
        athlete_id = (self.intervals_athlete_id or "").strip()
        if not athlete_id:
            raise ConfigurationError("INTERVALS_ATHLETE_ID")

        api_key = (
            self.intervals_api_key.get_secret_value().strip()
            if self.intervals_api_key
            else ""
        )
        if not api_key:
            raise ConfigurationError("INTERVALS_API_KEY")

        return athlete_id, api_key

    def masked_api_key(self) -> str | None:
        """API key reduced to its first and last three characters."""
        if not self.intervals_api_key:
            return None
        key = self.intervals_api_key.get_secret_value().strip()
        if not key:
            return None
        if len(key) <= 6:
            return f"{'*' * len(key)} (Length: {len(key)})"
        return f"{key[:3]}......{key[-3:]} (Length: {len(key)})"


_SETTINGS_LOCK = RLock()
_SETTINGS_CACHE: Settings | None = None


def get_settings(*, refresh: bool = False) -> Settings:
    """Return a cached ``Settings`` instance.

    Parameters
    ----------
    refresh:
        When ``True`` the cached instance is discarded and a new one is created.
    """

    global _SETTINGS_CACHE

    with _SETTINGS_LOCK:
        if refresh or _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = Settings()
        return _SETTINGS_CACHE


def clear_settings_cache() -> None:
    """Clear the cached settings instance."""

    global _SETTINGS_CACHE

    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None


@contextmanager
def override_settings(**overrides: Any) -> Iterator[Settings]:
    """Temporarily override the cached settings within a context."""

    global _SETTINGS_CACHE

    with _SETTINGS_LOCK:
        previous_settings = _SETTINGS_CACHE

    base_settings = previous_settings or Settings()
    patched_settings = base_settings.model_copy(update=overrides)

    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = patched_settings

    try:
        yield patched_settings
    finally:
        with _SETTINGS_LOCK:
            _SETTINGS_CACHE = previous_settings
