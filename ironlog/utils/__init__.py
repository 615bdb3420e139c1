"""Utility modules for IronLog"""

from .logger import (
    LoggerMixin,
    get_logger,
    log_api_usage,
    setup_logging,
)

__all__ = [
    "LoggerMixin",
    "get_logger",
    "setup_logging",
    "log_api_usage",
]
