"""
Cache Store Interface

Key/value store with TTL and integer counters. Implementations:
- RedisCache:    shared, atomic increments
- DatabaseCache: shared, read-then-write increments (may over-admit under load)
- MemoryCache:   single process, atomic under a lock
"""

import json
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

Clock = Callable[[], float]


class CacheUnavailable(Exception):
    """The backing store could not be reached."""
    pass


def serialize_value(value: Any) -> bytes:
    """
    Serialize a Python value to bytes for caching.

    Uses JSON with default handler for non-serializable types.
    """
    def default_handler(obj):
        if hasattr(obj, 'isoformat'):
            return obj.isoformat()
        if hasattr(obj, '__dict__'):
            return obj.__dict__
        return str(obj)

    json_str = json.dumps(value, default=default_handler, ensure_ascii=False)
    return json_str.encode('utf-8')


def deserialize_value(data: Optional[bytes]) -> Any:
    """
    Deserialize bytes back to Python value.
    """
    if not data:
        return None
    if isinstance(data, bytes):
        data = data.decode('utf-8')
    return json.loads(data)


class CacheStore(ABC):
    """Abstract base class for cache backends."""

    # True when incr() cannot lose updates under concurrent callers
    atomic: bool = False

    def __init__(self, clock: Optional[Clock] = None, namespace: str = "kseo"):
        self._clock = clock or time.time
        self.namespace = namespace

    def _key(self, key: str) -> str:
        """Namespaced storage key."""
        return f"{self.namespace}:{key}"

    def now(self) -> float:
        return self._clock()

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Value for key, or None if missing/expired."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int) -> bool:
        """Store value for ttl seconds."""
        pass

    @abstractmethod
    def add(self, key: str, value: Any, ttl: int) -> bool:
        """
        Store value only if key is absent.

        Returns:
            True if stored, False if the key already exists

        Raises:
            CacheUnavailable: backing store unreachable
        """
        pass

    @abstractmethod
    def incr(self, key: str, ttl: int) -> int:
        """
        Increment a counter and return the new value.

        A missing counter starts at 0 and gets the given TTL; an existing
        counter keeps its expiry.

        Raises:
            CacheUnavailable: backing store unreachable
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        pass

    def purge_expired(self) -> int:
        """Drop expired entries. Returns number removed; 0 where the store expires keys itself."""
        return 0
