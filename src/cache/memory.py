"""
In-process cache. Used by tests and single-worker deployments.
"""

import threading
from typing import Any, Dict, Optional, Tuple

from src.cache.base import CacheStore, Clock


class MemoryCache(CacheStore):
    atomic = True

    def __init__(self, clock: Optional[Clock] = None, namespace: str = "kseo"):
        super().__init__(clock, namespace)
        self._data: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def _alive(self, key: str) -> bool:
        item = self._data.get(self._key(key))
        if item is None:
            return False
        if item[1] <= self.now():
            del self._data[self._key(key)]
            return False
        return True

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._data[self._key(key)][0] if self._alive(key) else None

    def set(self, key: str, value: Any, ttl: int) -> bool:
        with self._lock:
            self._data[self._key(key)] = (value, self.now() + max(1, int(ttl)))
        return True

    def add(self, key: str, value: Any, ttl: int) -> bool:
        with self._lock:
            if self._alive(key):
                return False
            self._data[self._key(key)] = (value, self.now() + max(1, int(ttl)))
        return True

    def incr(self, key: str, ttl: int) -> int:
        with self._lock:
            if self._alive(key):
                value, expires = self._data[self._key(key)]
                count = int(value) + 1
                self._data[self._key(key)] = (count, expires)
            else:
                count = 1
                self._data[self._key(key)] = (count, self.now() + max(1, int(ttl)))
        return count

    def delete(self, key: str) -> bool:
        with self._lock:
            self._data.pop(self._key(key), None)
        return True

    def purge_expired(self) -> int:
        with self._lock:
            now = self.now()
            expired = [k for k, (_, expires) in self._data.items() if expires <= now]
            for k in expired:
                del self._data[k]
        return len(expired)
