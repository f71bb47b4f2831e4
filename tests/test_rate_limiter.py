"""
Rate Limiter Tests

Tests for fixed-window counting, actor resolution and store fallback.
"""

import hashlib

import pytest

from src.auth.rate_limiter import RateLimiter, resolve_actor, window_key
from src.cache.base import CacheUnavailable
from src.cache.database_cache import DatabaseCache
from src.cache.memory import MemoryCache
from src.utils.config import ConfigurationError


class UnreachableStore(MemoryCache):
    """A store whose counters always fail, like Redis with the network down."""

    def __init__(self, clock=None):
        super().__init__(clock)
        self.attempts = 0

    def incr(self, key, ttl):
        self.attempts += 1
        raise CacheUnavailable("connection refused")


@pytest.fixture
def limiter(cache, clock):
    return RateLimiter(cache, clock=clock)


# =============================================================================
# WINDOW TESTS
# =============================================================================

class TestFixedWindow:
    """Tests for per-minute counting."""

    def test_limit_then_deny(self, limiter):
        for i in range(5):
            decision = limiter.check("ai_keywords", "u:7", 5)
            assert decision.allowed is True
            assert decision.remaining == 4 - i

        denied = limiter.check("ai_keywords", "u:7", 5)
        assert denied.allowed is False
        assert denied.retry_after > 0
        assert denied.remaining == 0
        assert denied.headers["Retry-After"] == str(denied.retry_after)

    def test_next_window_resets(self, limiter, clock):
        for _ in range(6):
            limiter.check("ai_keywords", "u:7", 5)
        clock.advance(60)
        assert limiter.check("ai_keywords", "u:7", 5).allowed is True

    def test_retry_after_is_seconds_to_next_window(self, limiter, clock):
        clock.advance(45)
        limiter.check("ai_keywords", "u:7", 1)
        denied = limiter.check("ai_keywords", "u:7", 1)
        assert denied.retry_after == 15

    def test_window_is_wall_clock_minute(self, limiter, clock):
        """Counters reset at the top of the minute, not 60s after the first hit."""
        clock.advance(50)
        limiter.check("ai_keywords", "u:7", 1)
        assert limiter.check("ai_keywords", "u:7", 1).allowed is False
        clock.advance(10)
        assert limiter.check("ai_keywords", "u:7", 1).allowed is True

    def test_actors_counted_separately(self, limiter):
        limiter.check("ai_keywords", "u:1", 1)
        assert limiter.check("ai_keywords", "u:1", 1).allowed is False
        assert limiter.check("ai_keywords", "u:2", 1).allowed is True

    def test_routes_counted_separately(self, limiter):
        limiter.check("ai_keywords", "u:1", 1)
        assert limiter.check("ai_assignments", "u:1", 1).allowed is True

    def test_headers(self, limiter):
        decision = limiter.check("ai_keywords", "u:7", 10)
        assert decision.headers == {"X-RateLimit-Limit": "10", "X-RateLimit-Remaining": "9"}

    def test_window_key_is_hashed(self):
        key = window_key("ai_keywords", "u:7", 28333334)
        expected = hashlib.md5(b"ai_keywords|u:7|28333334").hexdigest()
        assert key == f"rl:{expected}"


class TestOverrides:
    """Tests for per-route limits from configuration."""

    def test_override_replaces_default(self, cache, clock):
        limiter = RateLimiter(cache, overrides={"ai_keywords": 2}, clock=clock)
        assert limiter.check("ai_keywords", "u:1", 10).limit == 2
        limiter.check("ai_keywords", "u:1", 10)
        assert limiter.check("ai_keywords", "u:1", 10).allowed is False
        assert limiter.check("ai_assignments", "u:1", 10).limit == 10

    def test_from_settings(self, cache, settings):
        settings = settings.model_copy(update={"KSEO_RATE_LIMITS": '{"ai_keywords": 3}'})
        limiter = RateLimiter.from_settings(cache, settings=settings)
        assert limiter.limit_for("ai_keywords", 10) == 3

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '{"ai_keywords": "many"}'])
    def test_malformed_overrides_fail_loudly(self, cache, settings, raw):
        settings = settings.model_copy(update={"KSEO_RATE_LIMITS": raw})
        with pytest.raises(ConfigurationError):
            RateLimiter.from_settings(cache, settings=settings)


# =============================================================================
# STORE FAILURE TESTS
# =============================================================================

class TestStoreFallback:
    """Tests for behavior when the counter store is unreachable."""

    def test_falls_back_to_secondary_store(self, clock, cache):
        primary = UnreachableStore(clock)
        limiter = RateLimiter(primary, fallback=cache, clock=clock)
        limiter.check("ai_keywords", "u:7", 1)
        assert limiter.check("ai_keywords", "u:7", 1).allowed is False
        assert primary.attempts == 2

    def test_database_fallback(self, clock, session_factory):
        limiter = RateLimiter(
            UnreachableStore(clock),
            fallback=DatabaseCache(session_factory, clock=clock),
            clock=clock,
        )
        for _ in range(3):
            assert limiter.check("ai_keywords", "u:7", 3).allowed is True
        assert limiter.check("ai_keywords", "u:7", 3).allowed is False

    def test_admits_when_no_store_reachable(self, clock):
        limiter = RateLimiter(UnreachableStore(clock), fallback=UnreachableStore(clock), clock=clock)
        for _ in range(5):
            decision = limiter.check("ai_keywords", "u:7", 1)
            assert decision.allowed is True
            assert decision.remaining == 1


# =============================================================================
# ACTOR TESTS
# =============================================================================

class TestResolveActor:

    def test_user_wins(self):
        assert resolve_actor(user_id="7", bearer="abc", remote_addr="1.2.3.4") == "u:7"

    def test_bearer_hashed(self):
        actor = resolve_actor(bearer="kseo_secret")
        assert actor == "k:" + hashlib.sha256(b"kseo_secret").hexdigest()
        assert "kseo_secret" not in actor

    def test_remote_addr(self):
        assert resolve_actor(remote_addr="1.2.3.4") == "ip:1.2.3.4"

    def test_unknown_client(self):
        assert resolve_actor() == "ip:0.0.0.0"
