"""
Keyword Cannibalization Detector

Flags keywords that more than one page targets. Keywords are bucketed by
their normalized form; every bucket holding two or more distinct URLs
becomes one `cannibalization` event, with the first-seen URL (newest
result) as primary and a recommendation to consolidate into it.

Example event details:
    {
        "primary_url": "https://example.com/engine-oil",
        "competing_urls": ["https://example.com/oil-guide"],
        "keyword": "engine oil",
        "recommendation": {
            "action": "consolidate",
            "target_url": "https://example.com/engine-oil",
            "notes": "Merge overlapping pages and set canonical to primary."
        }
    }
"""

import logging
import re
from typing import Dict, List

from src.database.repository import StoredResult
from .base import Detector

logger = logging.getLogger(__name__)

JACCARD_THRESHOLD = 0.7
EDIT_DISTANCE_THRESHOLD = 2


def normalize_keyword(keyword: str) -> str:
    """Lowercase, drop anything but a-z/0-9/whitespace, collapse whitespace."""
    text = keyword.lower()
    text = re.sub(r"[^a-z0-9\s]", "", text)
    return re.sub(r"\s+", " ", text.strip())


def jaccard_tokens(a: str, b: str) -> float:
    """Jaccard similarity of the normalized token sets. Two empty strings are identical."""
    ta = set(normalize_keyword(a).split())
    tb = set(normalize_keyword(b).split())
    if not ta and not tb:
        return 1.0
    union = ta | tb
    return len(ta & tb) / len(union) if union else 0.0


def levenshtein(a: str, b: str) -> int:
    """Edit distance (insert, delete, substitute all cost 1)."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def is_near(a: str, b: str) -> bool:
    """Same topic: token Jaccard >= 0.7, or normalized edit distance <= 2."""
    if jaccard_tokens(a, b) >= JACCARD_THRESHOLD:
        return True
    return levenshtein(normalize_keyword(a), normalize_keyword(b)) <= EDIT_DISTANCE_THRESHOLD


def consolidation_recommendation(primary_url: str) -> Dict[str, str]:
    return {
        "action": "consolidate",
        "target_url": primary_url,
        "notes": "Merge overlapping pages and set canonical to primary.",
    }


class CannibalizationDetector(Detector):
    """
    Usage:
        detector = CannibalizationDetector(EventStore(), get_cache_store(), resolver)
        emitted = detector.scan_recent()
    """

    event_type = "cannibalization"
    throttle_key = "cannibal:scan"
    scan_limit = 500

    def _scan(self, results: List[StoredResult]) -> int:
        # keyword -> {url: subject_id}, both in first-seen order
        buckets: Dict[str, Dict[str, str]] = {}
        for result in results:
            url = self.url_for(result)
            if not url:
                continue
            for keyword in result.keywords:
                norm = normalize_keyword(str(keyword))
                if not norm:
                    continue
                buckets.setdefault(norm, {}).setdefault(url, result.subject_id)

        emitted = 0
        for keyword, urls in buckets.items():
            if len(urls) < 2:
                continue
            ordered = list(urls)
            primary, competing = ordered[0], ordered[1:]
            details = {
                "primary_url": primary,
                "competing_urls": competing,
                "keyword": keyword,
                "recommendation": consolidation_recommendation(primary),
            }
            logged = self.events.log_event(
                self.event_type,
                details=details,
                subject_id=urls[primary],
                related_subject_ids=[urls[u] for u in competing],
            )
            if logged:
                emitted += 1
        return emitted
