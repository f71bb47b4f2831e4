"""
Jobs Module

Periodic reprocessing of site pages:
- SitemapReader: candidate discovery
- BatchProcessor: one time-boxed run (analyze, store, scan, alert)
- BatchScheduler: weekly runs and self-scheduled follow-ups
"""

from .sitemap import SitemapReader, parse_locations
from .batch import BatchProcessor, BatchReport, JobState, FOLLOW_UP_DELAY_SECONDS
from .scheduler import BatchScheduler

__all__ = [
    "SitemapReader",
    "parse_locations",
    "BatchProcessor",
    "BatchReport",
    "JobState",
    "FOLLOW_UP_DELAY_SECONDS",
    "BatchScheduler",
]
