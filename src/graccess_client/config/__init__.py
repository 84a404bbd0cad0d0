"""Provisioning settings."""
from .settings import (
    ExportSettings,
    GalaxySettings,
    InstanceSpec,
    Settings,
    find_settings_file,
    load_settings,
)

__all__ = [
    "ExportSettings",
    "GalaxySettings",
    "InstanceSpec",
    "Settings",
    "find_settings_file",
    "load_settings",
]
