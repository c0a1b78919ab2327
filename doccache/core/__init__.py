"""Core: settings, constants and runtime wiring."""

from doccache.core.config import EntityStoreConfig, Settings, get_settings

__all__ = [
    "EntityStoreConfig",
    "Settings",
    "get_settings",
]
