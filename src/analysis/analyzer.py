"""
Deterministic Content Analyzer

Extracts entities, search intent, a difficulty heuristic and keyword
suggestions from a content body and a seed phrase. No external APIs,
no hidden state: identical inputs always produce identical results.

Difficulty formula:
    20 + floor(log10(text_bytes) * 10)
       + floor(unique_lowercase_letters / 26 * 30)
       + seed modifiers (+10 best|top|cheap|free, +15 price|buy|order)
    clamped to 0-100
"""

import math
import re
from typing import List

from .models import AnalysisResult, SearchIntent, MAX_ENTITIES

MAX_UNIGRAMS = 20
MAX_BIGRAMS = 20
MAX_TOKENS = 100

_SCRIPT_STYLE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.DOTALL | re.IGNORECASE)
_TAG = re.compile(r"<[^>]*>")
_ENTITY = re.compile(r"\b([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)*)\b")
_NON_WORD = re.compile(r"\W+")
_NON_LOWER = re.compile(r"[^a-z]")

# Ordered: first match wins. "near me" appears in both the transactional and
# local rules; the transactional rule is tested first and takes precedence.
INTENT_RULES = [
    (re.compile(r"\b(how|tutorial|guide)\b"), SearchIntent.INFORMATIONAL),
    (re.compile(r"\b(what|definition|meaning)\b"), SearchIntent.INFORMATIONAL),
    (re.compile(r"\b(best|top|vs|compare|review)\b"), SearchIntent.COMMERCIAL),
    (re.compile(r"\b(price|buy|deal|discount|near me|order)\b"), SearchIntent.TRANSACTIONAL),
    (re.compile(r"\b(near me|location|hours|address)\b"), SearchIntent.LOCAL),
]

SEED_MODIFIERS = [
    (re.compile(r"\b(best|top|cheap|free)\b", re.IGNORECASE), 10),
    (re.compile(r"\b(price|buy|order)\b", re.IGNORECASE), 15),
]


def strip_markup(content: str) -> str:
    """Remove script/style blocks and all tags, then trim."""
    text = _SCRIPT_STYLE.sub("", content or "")
    text = _TAG.sub("", text)
    return text.strip()


def _unique(items: List[str]) -> List[str]:
    seen = set()
    out = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def extract_entities(text: str) -> List[str]:
    """Runs of capitalized words, first-seen order, deduplicated, capped at 25."""
    return _unique(_ENTITY.findall(text))[:MAX_ENTITIES]


def detect_intent(text: str) -> SearchIntent:
    lowered = text.lower()
    for pattern, intent in INTENT_RULES:
        if pattern.search(lowered):
            return intent
    return SearchIntent.INFORMATIONAL


def difficulty_score(text: str, seed: str) -> int:
    length = max(1, len(text.encode("utf-8")))
    unique_letters = len(set(_NON_LOWER.sub("", text)))
    ratio = unique_letters / 26.0
    modifiers = sum(bonus for pattern, bonus in SEED_MODIFIERS if pattern.search(seed))
    score = 20 + int(math.log10(length) * 10) + int(ratio * 30) + modifiers
    return max(0, min(100, score))


def suggest(text: str, seed: str) -> List[str]:
    """
    Unigrams then bigrams drawn from seed + text.

    Tokens are lower-cased, split on non-word characters and deduplicated
    in order. The first 20 tokens are unigrams; bigrams pair each of the
    first 20 tokens with its successor.
    """
    words = [w for w in _NON_WORD.split(f"{seed} {text}".lower()) if w]
    words = _unique(words)[:MAX_TOKENS]
    unigrams = words[:MAX_UNIGRAMS]
    bigrams = [
        f"{words[i]} {words[i + 1]}"
        for i in range(min(len(words) - 1, MAX_BIGRAMS))
    ]
    return _unique(unigrams + bigrams)


def analyze(content: str, seed: str, locale: str = "en") -> AnalysisResult:
    """
    Analyze content against a seed phrase.

    Args:
        content: Raw content body; markup is stripped before analysis
        seed: Anchor phrase for intent and suggestions (may be empty)
        locale: Locale tag. Rules are English-only today; the value is
                accepted so callers can pass it through unchanged.

    Returns:
        AnalysisResult (never raises for str input)
    """
    text = strip_markup(content)
    seed = (seed or "").strip()

    return AnalysisResult(
        entities=extract_entities(text),
        intent=detect_intent(f"{seed} {text}"),
        difficulty=difficulty_score(text, seed),
        suggestions=suggest(text, seed),
    )
