"""
Fixed-Window Rate Limiter

Counts requests per (route, actor) in wall-clock minutes: the window is
floor(now / 60), so every counter resets at the top of the minute.

Counter stores:
- Redis: INCR + EXPIRE, exact under concurrent requests
- Database fallback: read-then-write, concurrent requests in the same
  window can over-admit slightly. Accepted for single-site installs.
"""

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from src.cache.base import CacheStore, CacheUnavailable
from src.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate-limit check. A denial is not an error."""
    allowed: bool
    retry_after: int
    limit: int
    remaining: int
    headers: Dict[str, str] = field(default_factory=dict)


def resolve_actor(
    user_id: Optional[str] = None,
    bearer: Optional[str] = None,
    remote_addr: Optional[str] = None,
) -> str:
    """
    Identity a request is counted against.

    Precedence: logged-in user > bearer token (hashed) > client address.
    """
    if user_id:
        return f"u:{user_id}"
    if bearer:
        return "k:" + hashlib.sha256(bearer.encode("utf-8")).hexdigest()
    return f"ip:{remote_addr or '0.0.0.0'}"


def window_key(route: str, actor: str, bucket: int) -> str:
    digest = hashlib.md5(f"{route}|{actor}|{bucket}".encode("utf-8")).hexdigest()
    return f"rl:{digest}"


class RateLimiter:
    """
    Usage:
        limiter = RateLimiter(store, fallback=db_store, overrides={"ai_keywords": 20})
        decision = limiter.check("ai_keywords", resolve_actor(user_id="7"), 10)
        if not decision.allowed:
            return 429 with decision.headers
    """

    def __init__(
        self,
        store: CacheStore,
        fallback: Optional[CacheStore] = None,
        overrides: Optional[Dict[str, int]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.store = store
        self.fallback = fallback
        self.overrides = dict(overrides or {})
        self._clock = clock or time.time

    @classmethod
    def from_settings(
        cls,
        store: CacheStore,
        fallback: Optional[CacheStore] = None,
        settings: Optional[Settings] = None,
    ) -> "RateLimiter":
        settings = settings or get_settings()
        return cls(store, fallback=fallback, overrides=settings.rate_limits)

    def limit_for(self, route: str, default: int) -> int:
        return int(self.overrides.get(route, default))

    def _increment(self, key: str, ttl: int) -> Optional[int]:
        try:
            return self.store.incr(key, ttl)
        except CacheUnavailable as e:
            if self.fallback is None:
                logger.error(f"Rate limit store unavailable: {e}")
                return None
            logger.warning(f"Rate limit store unavailable, using fallback: {e}")

        try:
            return self.fallback.incr(key, ttl)
        except CacheUnavailable as e:
            logger.error(f"Rate limit fallback store unavailable: {e}")
            return None

    def check(self, route: str, actor: str, limit_per_minute: int) -> RateLimitDecision:
        limit = self.limit_for(route, limit_per_minute)
        now = int(self._clock())
        bucket = now // WINDOW_SECONDS
        seconds_left = max(1, WINDOW_SECONDS - (now % WINDOW_SECONDS))

        count = self._increment(window_key(route, actor, bucket), seconds_left)
        if count is None:
            # No counter store reachable: admit rather than lock everyone out
            count = 0

        allowed = count <= limit
        remaining = max(0, limit - count)
        retry_after = 0 if allowed else seconds_left

        headers = {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(remaining),
        }
        if not allowed:
            headers["Retry-After"] = str(retry_after)
            logger.info(f"Rate limited {actor} on {route} ({count}/{limit})")

        return RateLimitDecision(
            allowed=allowed,
            retry_after=retry_after,
            limit=limit,
            remaining=remaining,
            headers=headers,
        )
