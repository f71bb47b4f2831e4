"""
Tests for the caching layer.

These tests verify:
- Memory and database store operations (get, set, add, incr, delete, purge)
- TTL expiry against a controlled clock
- Redis store behavior against a mocked client
- Circuit breaker behavior
- Store selection

No Redis server is required.
"""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.cache import (
    CacheConfig,
    CacheTTL,
    CacheUnavailable,
    DatabaseCache,
    MemoryCache,
    RedisCache,
    build_cache_store,
)
from src.cache.base import deserialize_value, serialize_value


# =============================================================================
# SERIALIZATION TESTS
# =============================================================================

class TestSerialization:
    """Test value serialization."""

    def test_serialize_deserialize_dict(self):
        data = {"key": "value", "number": 42, "nested": {"a": 1}}
        assert deserialize_value(serialize_value(data)) == data

    def test_serialize_datetime(self):
        data = {"timestamp": datetime(2024, 1, 15, 10, 30, 0)}
        assert deserialize_value(serialize_value(data))["timestamp"] == "2024-01-15T10:30:00"

    def test_deserialize_empty(self):
        assert deserialize_value(None) is None
        assert deserialize_value(b"") is None

    def test_unicode(self):
        assert deserialize_value(serialize_value("Grüße ☃")) == "Grüße ☃"


def test_ttl_defaults():
    assert CacheTTL.RATE_LIMIT_WINDOW == 60
    assert CacheTTL.DETECTOR_THROTTLE == 600
    assert CacheTTL.ALERT_IDEMPOTENCY == 86400


# =============================================================================
# SHARED STORE CONTRACT
# =============================================================================

@pytest.fixture(params=["memory", "database"])
def store(request, clock, session_factory):
    if request.param == "memory":
        return MemoryCache(clock=clock)
    return DatabaseCache(session_factory, clock=clock)


class TestStoreContract:
    """Behavior every store provides."""

    def test_get_missing(self, store):
        assert store.get("absent") is None

    def test_set_get(self, store):
        assert store.set("k", {"a": [1, 2]}, 60) is True
        assert store.get("k") == {"a": [1, 2]}

    def test_expiry(self, store, clock):
        store.set("k", "v", 60)
        clock.advance(59)
        assert store.get("k") == "v"
        clock.advance(1)
        assert store.get("k") is None

    def test_add_only_if_absent(self, store, clock):
        assert store.add("flag", 1, 600) is True
        assert store.add("flag", 1, 600) is False
        clock.advance(600)
        assert store.add("flag", 1, 600) is True

    def test_incr_counts_within_window(self, store):
        assert [store.incr("c", 60) for _ in range(3)] == [1, 2, 3]

    def test_incr_keeps_first_expiry(self, store, clock):
        store.incr("c", 60)
        clock.advance(30)
        store.incr("c", 60)
        clock.advance(30)
        assert store.incr("c", 60) == 1

    def test_delete(self, store):
        store.set("k", "v", 60)
        assert store.delete("k") is True
        assert store.get("k") is None

    def test_purge_expired(self, store, clock):
        store.set("short", 1, 10)
        store.set("long", 1, 1000)
        clock.advance(11)
        assert store.purge_expired() == 1
        assert store.purge_expired() == 0
        assert store.get("long") == 1


class TestNamespaces:

    def test_database_namespaces_isolated(self, session_factory, clock):
        a = DatabaseCache(session_factory, clock=clock, namespace="site-a")
        b = DatabaseCache(session_factory, clock=clock, namespace="site-b")
        a.set("k", "a", 60)
        assert b.get("k") is None
        assert a.incr("n", 60) == 1
        assert b.incr("n", 60) == 1

    def test_memory_namespaces_isolated(self, clock):
        a = MemoryCache(clock=clock, namespace="site-a")
        a.set("k", "a", 60)
        assert MemoryCache(clock=clock, namespace="site-b").get("k") is None


# =============================================================================
# DATABASE CACHE TESTS
# =============================================================================

class TestDatabaseCache:

    def test_not_atomic(self, session_factory):
        assert DatabaseCache.atomic is False
        assert MemoryCache.atomic is True
        assert RedisCache.atomic is True

    def test_incr_raises_when_database_down(self, broken_session_factory, clock):
        cache = DatabaseCache(broken_session_factory, clock=clock)
        with pytest.raises(CacheUnavailable):
            cache.incr("c", 60)

    def test_reads_and_writes_degrade(self, broken_session_factory, clock):
        cache = DatabaseCache(broken_session_factory, clock=clock)
        assert cache.get("k") is None
        assert cache.set("k", 1, 60) is False

    def test_add_raises_when_database_down(self, broken_session_factory, clock):
        cache = DatabaseCache(broken_session_factory, clock=clock)
        with pytest.raises(CacheUnavailable):
            cache.add("cannibal:scan", 1, 600)


# =============================================================================
# REDIS CACHE TESTS
# =============================================================================

@pytest.fixture
def redis_client():
    return MagicMock()


@pytest.fixture
def redis_cache(redis_client):
    config = CacheConfig(redis_url=None, namespace="kseo", circuit_breaker_threshold=2)
    return RedisCache(config=config, client=redis_client)


class TestRedisCache:
    """Test Redis operations against a mocked client."""

    def test_requires_url_without_client(self):
        with pytest.raises(CacheUnavailable):
            RedisCache(config=CacheConfig(redis_url=None))

    def test_get_deserializes(self, redis_cache, redis_client):
        redis_client.get.return_value = b'{"a": 1}'
        assert redis_cache.get("k") == {"a": 1}
        redis_client.get.assert_called_once_with("kseo:k")

    def test_set_with_ttl(self, redis_cache, redis_client):
        assert redis_cache.set("k", {"a": 1}, 120) is True
        redis_client.set.assert_called_once_with("kseo:k", b'{"a": 1}', ex=120)

    def test_add_uses_nx(self, redis_cache, redis_client):
        redis_client.set.return_value = None
        assert redis_cache.add("cannibal:scan", 1, 600) is False
        redis_client.set.assert_called_once_with("kseo:cannibal:scan", b"1", ex=600, nx=True)

    def test_add_raises_on_error(self, redis_cache, redis_client):
        redis_client.set.side_effect = RedisConnectionError("down")
        with pytest.raises(CacheUnavailable):
            redis_cache.add("cannibal:scan", 1, 600)

    def test_incr_creates_counter_with_expiry_in_one_transaction(self, redis_cache, redis_client):
        pipe = redis_client.pipeline.return_value
        pipe.execute.return_value = [True, 1]
        assert redis_cache.incr("rl:abc", 45) == 1
        redis_client.pipeline.assert_called_once_with(transaction=True)
        pipe.set.assert_called_once_with("kseo:rl:abc", 0, ex=45, nx=True)
        pipe.incr.assert_called_once_with("kseo:rl:abc")
        redis_client.incr.assert_not_called()
        redis_client.expire.assert_not_called()

    def test_incr_keeps_expiry_on_later_hits(self, redis_cache, redis_client):
        pipe = redis_client.pipeline.return_value
        pipe.execute.return_value = [None, 4]
        assert redis_cache.incr("rl:abc", 45) == 4
        redis_client.expire.assert_not_called()

    def test_get_degrades_on_error(self, redis_cache, redis_client):
        redis_client.get.side_effect = RedisConnectionError("down")
        assert redis_cache.get("k") is None

    def test_incr_raises_on_error(self, redis_cache, redis_client):
        redis_client.pipeline.return_value.execute.side_effect = RedisConnectionError("down")
        with pytest.raises(CacheUnavailable):
            redis_cache.incr("rl:abc", 45)

    def test_circuit_breaker_opens(self, redis_cache, redis_client):
        redis_client.get.side_effect = RedisConnectionError("down")
        redis_cache.get("a")
        redis_cache.get("b")
        redis_client.get.reset_mock()

        assert redis_cache.get("c") is None
        redis_client.get.assert_not_called()
        with pytest.raises(CacheUnavailable):
            redis_cache.incr("rl:abc", 45)

    def test_ping(self, redis_cache, redis_client):
        redis_client.ping.return_value = True
        assert redis_cache.ping() is True
        redis_client.ping.side_effect = RedisConnectionError("down")
        assert redis_cache.ping() is False

    def test_purge_is_noop(self, redis_cache, redis_client):
        assert redis_cache.purge_expired() == 0
        redis_client.delete.assert_not_called()


# =============================================================================
# STORE SELECTION TESTS
# =============================================================================

class TestBuildCacheStore:

    def test_database_without_redis_url(self, session_factory):
        store = build_cache_store(CacheConfig(redis_url=None), session_factory=session_factory)
        assert isinstance(store, DatabaseCache)

    def test_database_when_redis_unreachable(self, session_factory):
        config = CacheConfig(redis_url="redis://localhost:6399/0")
        with patch("src.cache.RedisCache.ping", return_value=False):
            store = build_cache_store(config, session_factory=session_factory)
        assert isinstance(store, DatabaseCache)

    def test_redis_when_reachable(self, session_factory):
        config = CacheConfig(redis_url="redis://localhost:6399/0", namespace="shop")
        with patch("src.cache.RedisCache.ping", return_value=True):
            store = build_cache_store(config, session_factory=session_factory)
        assert isinstance(store, RedisCache)
        assert store.namespace == "shop"
