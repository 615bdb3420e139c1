"""Configuration module for IronLog"""

from ironlog.config.settings import (
    ConfigurationError,
    Settings,
    clear_settings_cache,
    get_settings,
    override_settings,
)

__all__ = [
    "ConfigurationError",
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "override_settings",
]
