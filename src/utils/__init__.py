"""Utility modules for KSEO Booster."""

from .config import Settings, ConfigurationError, get_settings
from .flags import FeatureFlags, DEFAULT_FLAGS

__all__ = [
    "Settings",
    "ConfigurationError",
    "get_settings",
    "FeatureFlags",
    "DEFAULT_FLAGS",
]
