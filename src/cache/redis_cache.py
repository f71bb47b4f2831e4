"""
Redis Cache Implementation

Redis-backed store with:
- Atomic INCR counters for rate limiting
- Circuit breaker for resilience
- Namespace isolation
- Graceful degradation (get returns None on errors; add and incr raise)
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

from redis import Redis
from redis.exceptions import RedisError

from src.cache.base import (
    CacheStore,
    CacheUnavailable,
    Clock,
    deserialize_value,
    serialize_value,
)
from src.cache.config import CacheConfig, get_cache_config

logger = logging.getLogger(__name__)


@dataclass
class CircuitBreakerState:
    """Circuit breaker state tracking."""
    failures: int = 0
    last_failure: float = 0.0
    is_open: bool = False
    opened_at: float = 0.0


class CircuitBreaker:
    """
    Circuit breaker pattern for Redis connection.

    Fails fast after threshold failures, then lets a request through
    once the timeout has passed.
    """

    def __init__(self, threshold: int = 5, timeout: int = 60):
        self.threshold = threshold
        self.timeout = timeout
        self.state = CircuitBreakerState()
        self._lock = threading.Lock()

    def is_available(self) -> bool:
        """Check if circuit allows requests."""
        if not self.state.is_open:
            return True

        if time.time() - self.state.opened_at >= self.timeout:
            with self._lock:
                # Half-open: allow a request through
                self.state.is_open = False
                self.state.failures = 0
                logger.info("Circuit breaker closed, allowing requests")
            return True

        return False

    def record_success(self):
        with self._lock:
            self.state.failures = 0
            self.state.is_open = False

    def record_failure(self):
        with self._lock:
            self.state.failures += 1
            self.state.last_failure = time.time()

            if self.state.failures >= self.threshold:
                self.state.is_open = True
                self.state.opened_at = time.time()
                logger.warning(
                    f"Circuit breaker opened after {self.state.failures} failures. "
                    f"Will retry in {self.timeout} seconds."
                )


class RedisCache(CacheStore):
    """
    Redis cache with atomic counters.

    Keys passed in are namespaced with the configured prefix.
    """

    atomic = True

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        client: Optional[Redis] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config or get_cache_config()
        super().__init__(clock, namespace=self.config.namespace)
        if client is None:
            if not self.config.redis_url:
                raise CacheUnavailable("REDIS_URL is not configured")
            client = Redis.from_url(
                self.config.redis_url,
                socket_timeout=self.config.redis_socket_timeout,
                socket_connect_timeout=self.config.redis_connect_timeout,
            )
        self._redis = client
        self._circuit_breaker = CircuitBreaker(
            threshold=self.config.circuit_breaker_threshold,
            timeout=self.config.circuit_breaker_timeout,
        ) if self.config.circuit_breaker_enabled else None

    def _call(self, op: str, fn):
        """Run a Redis call through the circuit breaker."""
        if self._circuit_breaker and not self._circuit_breaker.is_available():
            raise CacheUnavailable("Circuit breaker is open")
        try:
            result = fn()
        except RedisError as e:
            if self._circuit_breaker:
                self._circuit_breaker.record_failure()
            raise CacheUnavailable(f"Redis {op} failed: {e}") from e
        if self._circuit_breaker:
            self._circuit_breaker.record_success()
        return result

    def ping(self) -> bool:
        try:
            return bool(self._call("ping", self._redis.ping))
        except CacheUnavailable as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def get(self, key: str) -> Optional[Any]:
        try:
            data = self._call("get", lambda: self._redis.get(self._key(key)))
        except CacheUnavailable as e:
            logger.warning(f"Redis unavailable, returning None: {e}")
            return None
        try:
            return deserialize_value(data)
        except ValueError as e:
            logger.error(f"Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int) -> bool:
        payload = serialize_value(value)
        try:
            self._call("set", lambda: self._redis.set(self._key(key), payload, ex=max(1, int(ttl))))
            return True
        except CacheUnavailable as e:
            logger.warning(f"Redis unavailable, cache set failed: {e}")
            return False

    def add(self, key: str, value: Any, ttl: int) -> bool:
        payload = serialize_value(value)
        stored = self._call(
            "add",
            lambda: self._redis.set(self._key(key), payload, ex=max(1, int(ttl)), nx=True),
        )
        return bool(stored)

    def incr(self, key: str, ttl: int) -> int:
        full_key = self._key(key)

        def run():
            # MULTI: the counter is created with its expiry before the first INCR
            pipe = self._redis.pipeline(transaction=True)
            pipe.set(full_key, 0, ex=max(1, int(ttl)), nx=True)
            pipe.incr(full_key)
            return pipe.execute()

        _, count = self._call("incr", run)
        return int(count)

    def delete(self, key: str) -> bool:
        try:
            self._call("delete", lambda: self._redis.delete(self._key(key)))
            return True
        except CacheUnavailable as e:
            logger.error(f"Cache delete error for {key}: {e}")
            return False
