"""
Admin Module

Typed application settings managed from the admin surfaces.
"""

from .app_settings import (
    AppSettingsStore,
    SettingValue,
    SettingDefinition,
    DEFAULT_SETTINGS,
    MAINTENANCE_MODE_KEY,
    resolve_kind,
)

__all__ = [
    "AppSettingsStore",
    "SettingValue",
    "SettingDefinition",
    "DEFAULT_SETTINGS",
    "MAINTENANCE_MODE_KEY",
    "resolve_kind",
]
