"""
Service wiring for the API.

Components are built once at startup and stored on app.state; endpoints
receive them through FastAPI dependencies.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request

from src.analysis.subjects import HttpSubjectResolver, SubjectResolver
from src.auth import (
    ApiKeyManager,
    AuthError,
    RateLimiter,
    RequestAuthenticator,
)
from src.cache import CacheStore, RedisCache, build_cache_store, build_fallback_store
from src.database import EventStore, SessionFactory, get_session_factory
from src.utils.config import Settings, get_settings
from src.utils.flags import FeatureFlags

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    flags: FeatureFlags
    events: EventStore
    cache: CacheStore
    rate_limiter: RateLimiter
    key_manager: ApiKeyManager
    authenticator: RequestAuthenticator
    resolver: SubjectResolver


def build_services(
    settings: Optional[Settings] = None,
    session_factory: Optional[SessionFactory] = None,
    cache: Optional[CacheStore] = None,
    resolver: Optional[SubjectResolver] = None,
    flags: Optional[FeatureFlags] = None,
) -> Services:
    """
    Raises:
        ConfigurationError: malformed rate limits or feature flags
    """
    settings = settings or get_settings()
    session_factory = session_factory or get_session_factory()
    flags = flags or FeatureFlags(settings=settings)

    cache = cache or build_cache_store(session_factory=session_factory)
    fallback = build_fallback_store(session_factory=session_factory) if isinstance(cache, RedisCache) else None
    key_manager = ApiKeyManager(session_factory)

    return Services(
        settings=settings,
        flags=flags,
        events=EventStore(session_factory),
        cache=cache,
        rate_limiter=RateLimiter.from_settings(cache, fallback=fallback, settings=settings),
        key_manager=key_manager,
        authenticator=RequestAuthenticator(key_manager, flags),
        resolver=resolver or HttpSubjectResolver(timeout=settings.HTTP_TIMEOUT_SECONDS),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_actor(request: Request, services: Services = Depends(get_services)) -> str:
    """Authenticated actor id, or 401."""
    try:
        return services.authenticator.authenticate(request)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
