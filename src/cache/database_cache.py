"""
Database Cache Implementation

Key/value entries with expiry in the cache_entries table.
No Redis required - uses the same database as the application.

Counters are read-then-write: two requests racing on the same key can
both observe the same count, so under concurrency a limit may admit a
few more requests than configured. Use RedisCache where that matters.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.cache.base import CacheStore, CacheUnavailable, Clock
from src.database.models import CacheEntry
from src.database.session import SessionFactory, get_session_factory, session_scope

logger = logging.getLogger(__name__)


class DatabaseCache(CacheStore):
    """
    Database-backed cache using the cache_entries table.

    Simple and reliable - no external dependencies.
    """

    atomic = False

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        clock: Optional[Clock] = None,
        namespace: str = "kseo",
    ):
        super().__init__(clock, namespace)
        self._session_factory = session_factory or get_session_factory()

    def _now_dt(self) -> datetime:
        return datetime.fromtimestamp(self.now(), timezone.utc).replace(tzinfo=None)

    def _expiry(self, ttl: int) -> datetime:
        return self._now_dt() + timedelta(seconds=max(1, int(ttl)))

    def _live(self, entry: Optional[CacheEntry]) -> bool:
        return entry is not None and (
            entry.expires_at is None or entry.expires_at > self._now_dt()
        )

    def get(self, key: str) -> Optional[Any]:
        try:
            with session_scope(self._session_factory) as db:
                entry = db.scalars(select(CacheEntry).where(CacheEntry.key == self._key(key))).first()
                if not self._live(entry):
                    return None
                raw = entry.value
        except SQLAlchemyError as e:
            logger.error(f"Cache get error for {key}: {e}")
            return None

        try:
            return json.loads(raw) if raw else None
        except ValueError:
            return None

    def _write(self, key: str, value: Any, ttl: int, only_if_absent: bool) -> bool:
        payload = json.dumps(value, ensure_ascii=False, default=str)
        try:
            with session_scope(self._session_factory) as db:
                entry = db.scalars(select(CacheEntry).where(CacheEntry.key == self._key(key))).first()
                if entry is None:
                    db.add(CacheEntry(key=self._key(key), value=payload, expires_at=self._expiry(ttl)))
                elif only_if_absent and self._live(entry):
                    return False
                else:
                    entry.value = payload
                    entry.expires_at = self._expiry(ttl)
        except IntegrityError:
            # Concurrent insert of the same key won
            return False
        except SQLAlchemyError as e:
            if only_if_absent:
                raise CacheUnavailable(f"Database add failed for {key}: {e}") from e
            logger.error(f"Cache write error for {key}: {e}")
            return False
        return True

    def set(self, key: str, value: Any, ttl: int) -> bool:
        return self._write(key, value, ttl, only_if_absent=False)

    def add(self, key: str, value: Any, ttl: int) -> bool:
        return self._write(key, value, ttl, only_if_absent=True)

    def incr(self, key: str, ttl: int) -> int:
        try:
            with session_scope(self._session_factory) as db:
                entry = db.scalars(select(CacheEntry).where(CacheEntry.key == self._key(key))).first()
                if entry is None:
                    db.add(CacheEntry(key=self._key(key), value="1", expires_at=self._expiry(ttl)))
                    return 1
                if not self._live(entry):
                    entry.value = "1"
                    entry.expires_at = self._expiry(ttl)
                    return 1
                try:
                    count = int(entry.value or 0) + 1
                except ValueError:
                    count = 1
                entry.value = str(count)
                return count
        except SQLAlchemyError as e:
            raise CacheUnavailable(f"Database counter failed for {key}: {e}") from e

    def delete(self, key: str) -> bool:
        try:
            with session_scope(self._session_factory) as db:
                db.execute(delete(CacheEntry).where(CacheEntry.key == self._key(key)))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Cache delete error for {key}: {e}")
            return False

    def purge_expired(self) -> int:
        """Delete expired rows. Returns number removed."""
        try:
            with session_scope(self._session_factory) as db:
                result = db.execute(
                    delete(CacheEntry).where(
                        CacheEntry.expires_at.is_not(None),
                        CacheEntry.expires_at <= self._now_dt(),
                    )
                )
                removed = result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error(f"Cache purge failed: {e}")
            return 0
        if removed:
            logger.info(f"Purged {removed} expired cache entries")
        return removed
