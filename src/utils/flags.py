"""
Feature Flags

Boolean switches for request-boundary behavior. Defaults can be
overridden with a JSON object in KSEO_FEATURE_FLAGS, e.g.
    KSEO_FEATURE_FLAGS='{"rate_limit_enabled": false}'
"""

import json
import logging
from typing import Any, Dict, Optional

from .config import Settings, ConfigurationError, get_settings

logger = logging.getLogger(__name__)

DEFAULT_FLAGS: Dict[str, Any] = {
    "rate_limit_enabled": True,
    "strict_json_validation": True,
    "bearer_only": True,
}


class FeatureFlags:
    """Feature flags resolved once from settings."""

    def __init__(self, overrides: Optional[Dict[str, Any]] = None, settings: Optional[Settings] = None):
        if overrides is None:
            overrides = self._load_overrides(settings or get_settings())
        self._flags = {**DEFAULT_FLAGS, **overrides}

    @staticmethod
    def _load_overrides(settings: Settings) -> Dict[str, Any]:
        raw = settings.KSEO_FEATURE_FLAGS
        if not raw or not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ConfigurationError(f"KSEO_FEATURE_FLAGS is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError("KSEO_FEATURE_FLAGS must be a JSON object")
        return data

    def all(self) -> Dict[str, Any]:
        return dict(self._flags)

    def is_enabled(self, flag: str) -> bool:
        return bool(self._flags.get(flag))

    def get(self, flag: str, default: Any = None) -> Any:
        return self._flags.get(flag, default)
