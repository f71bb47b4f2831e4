"""
Content Decay Detector

Compares the before/after scores of each subject's latest result:

    delta = (max(1, score_after) - max(1, score_before)) / max(1, score_before)

A drop of 30% or more (delta <= -0.30) emits a `decay` event suggesting a
refresh. `impressions_delta` is a fixed placeholder until a traffic source
(e.g. Search Console) is connected; it carries no signal.
"""

import logging
from typing import List, Optional, Set

from src.database.repository import StoredResult
from .base import Detector

logger = logging.getLogger(__name__)

DECAY_THRESHOLD = -0.30
IMPRESSIONS_DELTA_PLACEHOLDER = 0.02


def score_delta(score_before: Optional[int], score_after: Optional[int]) -> float:
    """Relative change from before to after, scores floored at 1."""
    before = max(1, int(score_before or 0))
    after = max(1, int(score_after or 0))
    return (after - before) / before


def is_decayed(delta: float) -> bool:
    return delta <= DECAY_THRESHOLD


class DecayDetector(Detector):
    event_type = "decay"
    throttle_key = "decay:scan"
    scan_limit = 200

    def _scan(self, results: List[StoredResult]) -> int:
        seen: Set[str] = set()
        emitted = 0
        for result in results:
            if result.subject_id in seen:
                continue
            seen.add(result.subject_id)

            delta = score_delta(result.score_before, result.score_after)
            if not is_decayed(delta):
                continue

            details = {
                "url": self.url_for(result),
                "top_keywords": [],
                "clicks_delta": round(delta, 2),
                "impressions_delta": IMPRESSIONS_DELTA_PLACEHOLDER,
                "suggestion": "refresh",
            }
            if self.events.log_event(self.event_type, details=details, subject_id=result.subject_id):
                emitted += 1
        return emitted
