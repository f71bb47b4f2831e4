"""
Analysis Module for KSEO Booster

Deterministic, dependency-free text analysis and recommendation building.

Example Usage:
    from src.analysis import analyze, build_recommendations

    result = analyze("<p>Engine Oil for Diesel Trucks</p>", "best engine oil")
    print(result.intent)        # SearchIntent.COMMERCIAL
    bundle = build_recommendations(result, "Engine oil guide")
    print(bundle.title)         # "Best Engine Oil"
"""

from .models import (
    SearchIntent,
    AnalysisResult,
    Assignment,
    OutlineNode,
    FaqItem,
    RecommendationBundle,
)
from .analyzer import (
    analyze,
    strip_markup,
    extract_entities,
    detect_intent,
    difficulty_score,
    suggest,
)
from .recommendations import build as build_recommendations
from .subjects import (
    Subject,
    SubjectResolver,
    StaticSubjectResolver,
    HttpSubjectResolver,
)

__all__ = [
    "SearchIntent",
    "AnalysisResult",
    "Assignment",
    "OutlineNode",
    "FaqItem",
    "RecommendationBundle",
    "analyze",
    "strip_markup",
    "extract_entities",
    "detect_intent",
    "difficulty_score",
    "suggest",
    "build_recommendations",
    "Subject",
    "SubjectResolver",
    "StaticSubjectResolver",
    "HttpSubjectResolver",
]
