"""
Recommendation Builder

Turns an AnalysisResult plus a content title into a suggested title,
meta description, outline, FAQ and JSON-LD graph. Pure and deterministic.
Lengths are counted in characters, so multibyte titles are truncated on
character boundaries.
"""

from typing import Any, Dict, List

from .models import (
    AnalysisResult,
    FaqItem,
    OutlineNode,
    RecommendationBundle,
    SearchIntent,
)

TITLE_MAX_CHARS = 60
META_MAX_CHARS = 155
OUTLINE_MAX_NODES = 8
OUTLINE_MAX_ENTITIES = 6
OUTLINE_MAX_SUGGESTIONS = 6

TITLE_PREFIXES = {
    SearchIntent.TRANSACTIONAL: "Buy ",
    SearchIntent.COMMERCIAL: "Best ",
}

CALLS_TO_ACTION = {
    SearchIntent.TRANSACTIONAL: "Compare prices and order today.",
    SearchIntent.COMMERCIAL: "See top picks and comparisons.",
}
DEFAULT_CTA = "Learn key facts and best practices."


def _title_case(phrase: str) -> str:
    """Upper-case the first letter of each space separated word."""
    return " ".join(w[:1].upper() + w[1:] for w in phrase.split(" "))


def build_title(title: str, entity: str, intent: SearchIntent) -> str:
    prefix = TITLE_PREFIXES.get(intent, "Guide: ")
    core = entity or title
    return (prefix + core).strip()[:TITLE_MAX_CHARS]


def build_meta_description(title: str, entity: str, intent: SearchIntent) -> str:
    core = entity or title
    return f"{core} – {CALLS_TO_ACTION.get(intent, DEFAULT_CTA)}"[:META_MAX_CHARS]


def build_outline(analysis: AnalysisResult) -> List[OutlineNode]:
    nodes = [OutlineNode(heading=e) for e in analysis.entities[:OUTLINE_MAX_ENTITIES]]
    nodes += [
        OutlineNode(heading=_title_case(s))
        for s in analysis.suggestions[:OUTLINE_MAX_SUGGESTIONS]
    ]
    return nodes[:OUTLINE_MAX_NODES]


def build_faq(analysis: AnalysisResult, title: str) -> List[FaqItem]:
    entities = analysis.entities

    def entity_at(i: int, fallback: str) -> str:
        return entities[i] if len(entities) > i else fallback

    return [
        FaqItem(
            question=f"What is {entity_at(0, title)}?",
            answer="A concise explanation relevant to the topic.",
        ),
        FaqItem(
            question=f"How to use {entity_at(1, 'it')}?",
            answer="Step-by-step guidance derived from the content.",
        ),
        FaqItem(
            question=f"What are the benefits of {entity_at(2, title)}?",
            answer="Key advantages summarized for readers.",
        ),
    ]


def build_structured_data(title: str, description: str, faq: List[FaqItem]) -> Dict[str, Any]:
    """JSON-LD graph with an Article node and a FAQPage node."""
    return {
        "@context": "https://schema.org",
        "@graph": [
            {
                "@type": "Article",
                "headline": title,
                "description": description,
            },
            {
                "@type": "FAQPage",
                "mainEntity": [
                    {
                        "@type": "Question",
                        "name": item.question,
                        "acceptedAnswer": {"@type": "Answer", "text": item.answer},
                    }
                    for item in faq
                ],
            },
        ],
    }


def build(analysis: AnalysisResult, title: str) -> RecommendationBundle:
    """
    Build recommendations for a piece of content.

    Args:
        analysis: Result of analyze()
        title: Current content title, used when no entity was found

    Returns:
        RecommendationBundle
    """
    title = title or ""
    entity = analysis.entities[0] if analysis.entities else ""

    suggested_title = build_title(title, entity, analysis.intent)
    meta_description = build_meta_description(title, entity, analysis.intent)
    faq = build_faq(analysis, title)

    return RecommendationBundle(
        title=suggested_title,
        meta_description=meta_description,
        outline=build_outline(analysis),
        faq=faq,
        structured_data=build_structured_data(title, meta_description, faq),
    )
