"""Configuration package."""

from src.config.settings import (
    GoogleSheetsSettings,
    Settings,
    StorageSettings,
    TrackerSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "GoogleSheetsSettings",
    "Settings",
    "StorageSettings",
    "TrackerSettings",
    "get_settings",
    "validate_all_settings",
]
