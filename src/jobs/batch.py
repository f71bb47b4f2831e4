"""
Batch Reprocessing

One run of the periodic reprocess job:

1. Discover up to MAX_URLS_PER_RUN candidate URLs from the sitemap
2. For each, while inside the time budget: resolve the page, analyze it
   with its title as seed, and store a result with a default assignment
3. Run the cannibalization and decay scans, alerting on fresh findings
4. If the budget ran out before every candidate was visited, ask for a
   follow-up run in five minutes

State: IDLE -> RUNNING -> COMPLETED | RESUMED. Nothing is carried between
runs; a follow-up rediscovers its candidates from the sitemap.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from src.analysis import analyze
from src.analysis.models import Assignment
from src.analysis.subjects import SubjectResolver
from src.database.repository import EventStore, ResultPayload
from src.detectors import CannibalizationDetector, DecayDetector
from src.delivery.alerts import AlertDispatcher
from src.utils.config import Settings, get_settings
from .sitemap import SitemapReader

logger = logging.getLogger(__name__)

FOLLOW_UP_DELAY_SECONDS = 300
RECENT_ALERT_MINUTES = 5
DEFAULT_FIT = 70
DEFAULT_SCORE_BEFORE = 65
DEFAULT_SCORE_AFTER = 75


class JobState(Enum):
    """Batch job states."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"     # Every candidate visited
    RESUMED = "resumed"         # Budget exhausted, follow-up requested


@dataclass
class BatchReport:
    """Outcome of one process_batch() run."""
    state: JobState
    discovered: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    cannibalization_events: int = 0
    decay_events: int = 0
    alerts_sent: int = 0
    follow_up_scheduled: bool = False
    elapsed_seconds: float = 0.0
    processed_urls: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "discovered": self.discovered,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "cannibalization_events": self.cannibalization_events,
            "decay_events": self.decay_events,
            "alerts_sent": self.alerts_sent,
            "follow_up_scheduled": self.follow_up_scheduled,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


class BatchProcessor:
    """
    Usage:
        processor = BatchProcessor(store, resolver, cannibalization, decay, alerts)
        report = processor.process_batch()
    """

    def __init__(
        self,
        events: EventStore,
        resolver: SubjectResolver,
        cannibalization: CannibalizationDetector,
        decay: DecayDetector,
        alerts: AlertDispatcher,
        settings: Optional[Settings] = None,
        sitemap: Optional[SitemapReader] = None,
        on_follow_up: Optional[Callable[[int], None]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.events = events
        self.resolver = resolver
        self.cannibalization = cannibalization
        self.decay = decay
        self.alerts = alerts
        self.settings = settings or get_settings()
        self.sitemap = sitemap or SitemapReader(timeout=self.settings.HTTP_TIMEOUT_SECONDS)
        self.on_follow_up = on_follow_up
        self._clock = clock or time.monotonic
        self.state = JobState.IDLE

    def process_batch(self) -> BatchReport:
        self.state = JobState.RUNNING
        started = self._clock()
        budget = float(self.settings.BATCH_TIME_BUDGET_SECONDS)

        urls = self.sitemap.discover(self.settings.sitemap_location, self.settings.max_urls_per_run)
        report = BatchReport(state=JobState.RUNNING, discovered=len(urls))
        logger.info(f"Batch started: {len(urls)} candidates, budget {budget}s")

        visited = 0
        for url in urls:
            if self._clock() - started > budget:
                logger.info(f"Batch time budget exhausted after {visited}/{len(urls)} candidates")
                break
            visited += 1
            try:
                self._process_url(url, report)
            except Exception as e:
                logger.error(f"Failed to process {url}: {e}")
                report.failed += 1

        report.cannibalization_events = self.cannibalization.scan_recent()
        report.decay_events = self.decay.scan_recent()
        if report.cannibalization_events > 0:
            report.alerts_sent += self.alerts.send_for_recent("cannibalization", RECENT_ALERT_MINUTES)
        if report.decay_events > 0:
            report.alerts_sent += self.alerts.send_for_recent("decay", RECENT_ALERT_MINUTES)

        if visited < len(urls):
            report.follow_up_scheduled = self._request_follow_up()
            self.state = JobState.RESUMED
        else:
            self.state = JobState.COMPLETED

        report.state = self.state
        report.elapsed_seconds = self._clock() - started
        logger.info(f"Batch finished: {report.to_dict()}")
        return report

    def _process_url(self, url: str, report: BatchReport) -> None:
        subject = self.resolver.resolve_url(url)
        if subject is None:
            logger.debug(f"No subject for {url}, skipping")
            report.skipped += 1
            return

        seed = subject.title
        analysis = analyze(subject.content, seed, "en")
        assignment = Assignment(url=subject.url, fit=DEFAULT_FIT)
        result_id = self.events.save_result(subject.id, ResultPayload(
            seed=seed,
            keywords=[],
            analysis=analysis,
            assignment=assignment,
            score_before=DEFAULT_SCORE_BEFORE,
            score_after=DEFAULT_SCORE_AFTER,
        ))
        if result_id is None:
            report.failed += 1
            return

        report.processed += 1
        report.processed_urls.append(subject.url)

    def _request_follow_up(self) -> bool:
        if self.on_follow_up is None:
            logger.warning("Work remains but no scheduler is attached for a follow-up run")
            return False
        self.on_follow_up(FOLLOW_UP_DELAY_SECONDS)
        return True
