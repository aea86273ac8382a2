"""Configuration helpers shared across hospital services."""

from .settings import (
    DischargeSettings,
    ObservabilitySettings,
    Settings,
    SupabaseSettings,
    get_settings,
)

__all__ = [
    "DischargeSettings",
    "ObservabilitySettings",
    "Settings",
    "SupabaseSettings",
    "get_settings",
]
