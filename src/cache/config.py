"""
Cache Configuration

Centralized configuration for the counter/cache layer used by the rate
limiter, the detector throttles and alert de-duplication.

Backend selection:
- REDIS_URL set and reachable: Redis (atomic INCR)
- otherwise: database-backed entries (non-atomic, see DatabaseCache)
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


@dataclass(frozen=True)
class CacheTTL:
    """TTL configuration (seconds) by purpose."""

    # Fixed rate-limit window
    RATE_LIMIT_WINDOW: int = 60

    # "Scan ran recently" throttle for the detectors
    DETECTOR_THROTTLE: int = 600

    # Alert de-duplication per event type and target
    ALERT_IDEMPOTENCY: int = 86400


@dataclass
class CacheConfig:
    """
    Main cache configuration.

    Settings can be overridden via environment variables:
    - REDIS_URL: Redis connection URL (unset disables Redis)
    - CACHE_NAMESPACE: Key prefix
    - CACHE_CIRCUIT_BREAKER_THRESHOLD / CACHE_CIRCUIT_BREAKER_TIMEOUT
    """

    redis_url: Optional[str] = field(default_factory=lambda: os.getenv("REDIS_URL"))

    namespace: str = field(default_factory=lambda: os.getenv(
        "CACHE_NAMESPACE",
        "kseo"
    ))

    redis_socket_timeout: float = field(default_factory=lambda: float(os.getenv(
        "REDIS_SOCKET_TIMEOUT",
        "2.0"
    )))
    redis_connect_timeout: float = field(default_factory=lambda: float(os.getenv(
        "REDIS_CONNECT_TIMEOUT",
        "2.0"
    )))

    circuit_breaker_enabled: bool = True
    circuit_breaker_threshold: int = field(default_factory=lambda: int(os.getenv(
        "CACHE_CIRCUIT_BREAKER_THRESHOLD",
        "5"
    )))
    circuit_breaker_timeout: int = field(default_factory=lambda: int(os.getenv(
        "CACHE_CIRCUIT_BREAKER_TIMEOUT",
        "60"
    )))


@lru_cache(maxsize=1)
def get_cache_config() -> CacheConfig:
    """Get singleton cache configuration."""
    return CacheConfig()
