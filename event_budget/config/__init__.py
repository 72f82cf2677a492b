"""Configuration package."""

from event_budget.config.settings import (
    AppSettings,
    GeminiSettings,
    LiveVoiceSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "LiveVoiceSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
