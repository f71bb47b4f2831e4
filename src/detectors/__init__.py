"""
Detectors for KSEO Booster

Scheduled scans over recent analysis results:

1. **Cannibalization** - several pages targeting the same keyword
2. **Decay** - a page whose score dropped by 30% or more

Both scans are throttled to once per 10 minutes and return the number of
events they logged.

Example Usage:
    from src.detectors import CannibalizationDetector, DecayDetector

    found = CannibalizationDetector(store, cache, resolver).scan_recent()
    found += DecayDetector(store, cache, resolver).scan_recent()
"""

from .base import Detector
from .cannibalization import (
    CannibalizationDetector,
    normalize_keyword,
    jaccard_tokens,
    levenshtein,
    is_near,
)
from .decay import DecayDetector, score_delta, is_decayed

__all__ = [
    "Detector",
    "CannibalizationDetector",
    "normalize_keyword",
    "jaccard_tokens",
    "levenshtein",
    "is_near",
    "DecayDetector",
    "score_delta",
    "is_decayed",
]
