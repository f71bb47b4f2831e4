"""
KSEO Cache Layer

Short-lived keys with TTL and integer counters:
- Rate-limit counters (one key per route/actor/minute)
- Detector throttle flags ("scan ran recently")
- Alert idempotency keys

Backends:
- RedisCache:    preferred, atomic INCR
- DatabaseCache: cache_entries table, used when Redis is absent or down
- MemoryCache:   single process (tests, CLI)

Usage:
    store = get_cache_store()
    if store.add("cannibal:scan", 1, CacheTTL.DETECTOR_THROTTLE):
        run_scan()
"""

import logging
from typing import Optional

from src.cache.base import CacheStore, CacheUnavailable, Clock
from src.cache.config import CacheConfig, CacheTTL, get_cache_config
from src.cache.database_cache import DatabaseCache
from src.cache.memory import MemoryCache
from src.cache.redis_cache import RedisCache
from src.database.session import SessionFactory

logger = logging.getLogger(__name__)

_cache_store: Optional[CacheStore] = None


def build_cache_store(
    config: Optional[CacheConfig] = None,
    session_factory: Optional[SessionFactory] = None,
    clock: Optional[Clock] = None,
) -> CacheStore:
    """
    Pick the shared store: Redis when configured and reachable,
    otherwise the database.
    """
    config = config or get_cache_config()
    if config.redis_url:
        try:
            redis_store = RedisCache(config=config, clock=clock)
            if redis_store.ping():
                logger.info("Cache store: Redis")
                return redis_store
        except CacheUnavailable as e:
            logger.warning(f"Redis not usable: {e}")
        logger.warning("Redis unreachable, falling back to database cache")

    return build_fallback_store(config, session_factory, clock)


def build_fallback_store(
    config: Optional[CacheConfig] = None,
    session_factory: Optional[SessionFactory] = None,
    clock: Optional[Clock] = None,
) -> CacheStore:
    config = config or get_cache_config()
    return DatabaseCache(session_factory=session_factory, clock=clock, namespace=config.namespace)


def get_cache_store() -> CacheStore:
    """Process-wide cache store."""
    global _cache_store
    if _cache_store is None:
        _cache_store = build_cache_store()
    return _cache_store


def reset_cache_store() -> None:
    global _cache_store
    _cache_store = None


__all__ = [
    "CacheStore",
    "CacheUnavailable",
    "CacheConfig",
    "CacheTTL",
    "get_cache_config",
    "RedisCache",
    "DatabaseCache",
    "MemoryCache",
    "build_cache_store",
    "build_fallback_store",
    "get_cache_store",
    "reset_cache_store",
]
