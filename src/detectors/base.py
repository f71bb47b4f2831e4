"""
Shared plumbing for the scan detectors.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from src.analysis.subjects import SubjectResolver
from src.cache.base import CacheStore, CacheUnavailable
from src.cache.config import CacheTTL
from src.database.repository import EventStore, StorageError, StoredResult

logger = logging.getLogger(__name__)


class Detector(ABC):
    """
    A batch scan over recent results that emits events.

    Scans are throttled by a cache flag: a scan within the last
    CacheTTL.DETECTOR_THROTTLE seconds makes scan_recent() a no-op.
    The flag is a best-effort throttle; two scans racing on it may both run,
    and an unreachable store lets the scan run rather than skip it.
    """

    event_type: str = ""
    throttle_key: str = ""
    scan_limit: int = 0

    def __init__(
        self,
        events: EventStore,
        cache: CacheStore,
        resolver: Optional[SubjectResolver] = None,
    ):
        self.events = events
        self.cache = cache
        self.resolver = resolver

    def scan_recent(self) -> int:
        """Run one scan. Returns the number of events emitted."""
        try:
            if not self.cache.add(self.throttle_key, 1, CacheTTL.DETECTOR_THROTTLE):
                logger.debug(f"{self.event_type} scan skipped, ran recently")
                return 0
        except CacheUnavailable as e:
            logger.warning(f"{self.event_type} throttle store unavailable, scanning unthrottled: {e}")

        try:
            results = self.events.recent_results(self.scan_limit)
        except StorageError as e:
            logger.error(f"{self.event_type} scan could not load results: {e}")
            return 0

        emitted = self._scan(results)
        logger.info(f"{self.event_type} scan: {len(results)} results, {emitted} events")
        return emitted

    @abstractmethod
    def _scan(self, results: list) -> int:
        pass

    def url_for(self, result: StoredResult) -> Optional[str]:
        """Assignment URL, else the subject's canonical URL."""
        if result.assignment_url:
            return result.assignment_url
        if self.resolver is None:
            return None
        return self.resolver.url_for(result.subject_id)
