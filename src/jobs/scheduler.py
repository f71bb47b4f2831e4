"""
Batch Scheduler

Runs BatchProcessor on APScheduler's BackgroundScheduler:
- weekly reprocess (first run one hour after start) when WEEKLY_CRON_ENABLED
- one-shot follow-ups requested by a run that ran out of time
- hourly purge of expired cache entries when a cache store is attached
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from src.cache.base import CacheStore
from src.utils.config import Settings, get_settings
from .batch import BatchProcessor

logger = logging.getLogger(__name__)

WEEKLY_JOB_ID = "kseo_weekly_reprocess"
FOLLOW_UP_JOB_ID = "kseo_reprocess_follow_up"
PURGE_JOB_ID = "kseo_cache_purge"
FIRST_RUN_DELAY = timedelta(hours=1)


class BatchScheduler:
    """
    Usage:
        scheduler = BatchScheduler(processor, cache=get_cache_store())
        scheduler.start()
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        processor: BatchProcessor,
        settings: Optional[Settings] = None,
        scheduler: Optional[BackgroundScheduler] = None,
        cache: Optional[CacheStore] = None,
    ):
        self.processor = processor
        self.cache = cache
        self.settings = settings or get_settings()
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self.scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

        if self.processor.on_follow_up is None:
            self.processor.on_follow_up = self.schedule_follow_up

    def start(self):
        """Register jobs and start the scheduler."""
        logger.info("Starting batch scheduler...")
        self.sync_weekly_job()
        self.sync_purge_job()
        self.scheduler.start()
        logger.info(f"Scheduler started with {len(self.scheduler.get_jobs())} jobs")

    def stop(self):
        logger.info("Stopping batch scheduler...")
        self.scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    def sync_weekly_job(self) -> bool:
        """Add or remove the weekly job to match WEEKLY_CRON_ENABLED. Returns whether it is scheduled."""
        existing = self.scheduler.get_job(WEEKLY_JOB_ID)
        if not self.settings.WEEKLY_CRON_ENABLED:
            if existing:
                self.scheduler.remove_job(WEEKLY_JOB_ID)
                logger.info("Weekly reprocess disabled, job removed")
            return False

        if existing is None:
            self.scheduler.add_job(
                func=self.run_batch,
                trigger=IntervalTrigger(
                    weeks=1,
                    start_date=datetime.now(timezone.utc) + FIRST_RUN_DELAY,
                ),
                id=WEEKLY_JOB_ID,
                name="KSEO weekly reprocess",
                replace_existing=True,
                max_instances=1,
            )
            logger.info("Weekly reprocess scheduled")
        return True

    def sync_purge_job(self) -> bool:
        """Schedule the hourly cache purge. Returns False when no cache store is attached."""
        if self.cache is None:
            return False
        self.scheduler.add_job(
            func=self.run_purge,
            trigger=IntervalTrigger(hours=1),
            id=PURGE_JOB_ID,
            name="KSEO cache purge",
            replace_existing=True,
            max_instances=1,
        )
        return True

    def schedule_follow_up(self, delay_seconds: int) -> None:
        run_at = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
        self.scheduler.add_job(
            func=self.run_batch,
            trigger=DateTrigger(run_date=run_at),
            id=FOLLOW_UP_JOB_ID,
            name="KSEO reprocess follow-up",
            replace_existing=True,
            max_instances=1,
        )
        logger.info(f"Follow-up batch scheduled for {run_at.isoformat()}")

    def run_batch(self) -> Dict[str, Any]:
        return self.processor.process_batch().to_dict()

    def run_purge(self) -> int:
        if self.cache is None:
            return 0
        removed = self.cache.purge_expired()
        logger.debug(f"Cache purge removed {removed} entries")
        return removed

    def _on_job_executed(self, event):
        """Handle job execution events from APScheduler."""
        if event.exception:
            logger.error(f"Job {event.job_id} failed: {event.exception}")
        else:
            logger.debug(f"Job {event.job_id} executed successfully")

    def list_jobs(self) -> List[Dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            # Jobs added before start() have no next_run_time yet
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run_time": next_run.isoformat() if next_run else None,
            })
        return jobs
