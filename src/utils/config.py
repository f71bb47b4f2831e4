"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

import json
import logging
from typing import Dict, Optional
from functools import lru_cache
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when a component cannot start with the configured values."""
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Storage
    DATABASE_URL: Optional[str] = None
    SQLITE_PATH: str = "kseo_dev.db"
    REDIS_URL: Optional[str] = None
    CACHE_NAMESPACE: str = "kseo"

    # Keyring
    KSEO_ACTIVE_KEY_ID: str = "dev"
    KSEO_REQUIRE_EXPLICIT_KEY: bool = False
    APP_AUTH_KEY: str = ""
    APP_AUTH_SALT: str = ""

    # Rate limiting: JSON object of route -> requests per minute
    KSEO_RATE_LIMITS: str = ""
    KSEO_FEATURE_FLAGS: str = ""

    # Alerts
    ALERT_EMAIL_ENABLED: bool = False
    ALERT_EMAIL_TO: Optional[str] = None
    ALERT_WEBHOOK_URL: Optional[str] = None
    RESEND_API_KEY: Optional[str] = None
    FROM_EMAIL: str = "alerts@kseo.local"

    # Batch processing
    SITE_URL: str = "http://localhost"
    SITEMAP_URL: Optional[str] = None
    MAX_URLS_PER_RUN: int = 10
    BATCH_TIME_BUDGET_SECONDS: float = 20.0
    WEEKLY_CRON_ENABLED: bool = False

    # Timeouts
    HTTP_TIMEOUT_SECONDS: float = 5.0

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        case_sensitive = False

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def sitemap_location(self) -> str:
        """Sitemap URL, defaulting to /sitemap.xml under the site URL."""
        if self.SITEMAP_URL:
            return self.SITEMAP_URL
        return self.SITE_URL.rstrip("/") + "/sitemap.xml"

    @property
    def rate_limits(self) -> Dict[str, int]:
        """Per-route rate limit overrides."""
        return parse_int_mapping(self.KSEO_RATE_LIMITS, "KSEO_RATE_LIMITS")

    @property
    def max_urls_per_run(self) -> int:
        return max(1, int(self.MAX_URLS_PER_RUN))


def parse_int_mapping(raw: str, name: str) -> Dict[str, int]:
    """Parse a JSON object of string -> int, raising ConfigurationError on garbage."""
    if not raw or not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{name} must be a JSON object")
    try:
        return {str(k): int(v) for k, v in data.items()}
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} values must be integers: {e}") from e


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
