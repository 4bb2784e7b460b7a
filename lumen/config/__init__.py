"""Configuration package."""

from lumen.config.settings import (
    CacheSettings,
    LoggingSettings,
    OpenAISettings,
    Settings,
    get_settings,
)

__all__ = [
    "CacheSettings",
    "LoggingSettings",
    "OpenAISettings",
    "Settings",
    "get_settings",
]
