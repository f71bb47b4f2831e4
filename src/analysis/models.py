"""
Analysis Data Models

Typed records exchanged between the analyzer, the recommendation builder,
the result store and the API layer. Everything here is JSON-shaped via
to_dict()/from_dict() so rows can be stored in JSON columns.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

MAX_ENTITIES = 25


class SearchIntent(str, Enum):
    """Search intent classification"""
    INFORMATIONAL = "informational"
    COMMERCIAL = "commercial"
    TRANSACTIONAL = "transactional"
    LOCAL = "local"

    @classmethod
    def parse(cls, value: Any) -> "SearchIntent":
        """Lenient parse; unknown values fall back to informational."""
        try:
            return cls(value)
        except ValueError:
            return cls.INFORMATIONAL


@dataclass(frozen=True)
class AnalysisResult:
    """
    Result of a deterministic content analysis.

    A pure function of (content, seed, locale). Construction clamps the
    difficulty into 0-100 and caps entities at 25 so a decoded row can
    never violate the invariants.
    """
    entities: List[str] = field(default_factory=list)
    intent: SearchIntent = SearchIntent.INFORMATIONAL
    difficulty: int = 0
    suggestions: List[str] = field(default_factory=list)

    def __post_init__(self):
        object.__setattr__(self, "entities", list(self.entities)[:MAX_ENTITIES])
        object.__setattr__(self, "intent", SearchIntent.parse(self.intent))
        object.__setattr__(self, "difficulty", max(0, min(100, int(self.difficulty))))
        object.__setattr__(self, "suggestions", list(self.suggestions))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entities": list(self.entities),
            "intent": self.intent.value,
            "difficulty": self.difficulty,
            "suggestions": list(self.suggestions),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AnalysisResult":
        """Build from a stored dict; missing or malformed fields become empty."""
        data = data if isinstance(data, dict) else {}
        entities = data.get("entities")
        suggestions = data.get("suggestions")
        try:
            difficulty = int(data.get("difficulty") or 0)
        except (TypeError, ValueError):
            difficulty = 0
        return cls(
            entities=[str(e) for e in entities] if isinstance(entities, list) else [],
            intent=data.get("intent", SearchIntent.INFORMATIONAL.value),
            difficulty=difficulty,
            suggestions=[str(s) for s in suggestions] if isinstance(suggestions, list) else [],
        )


@dataclass
class Assignment:
    """Maps a subject to a target URL with a fit score and named reason weights."""
    url: str
    fit: int = 70
    type: str = "existing_page"
    reasons: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        self.fit = max(0, min(100, int(self.fit)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "url": self.url,
            "fit": self.fit,
            "reasons": dict(self.reasons),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Assignment"]:
        if not isinstance(data, dict) or not data.get("url"):
            return None
        reasons = data.get("reasons")
        return cls(
            url=str(data["url"]),
            fit=data.get("fit", 0) or 0,
            type=str(data.get("type", "existing_page")),
            reasons=dict(reasons) if isinstance(reasons, dict) else {},
        )


@dataclass
class OutlineNode:
    """A heading in the suggested outline. Leaf-only for now."""
    heading: str
    children: List["OutlineNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"h2": self.heading, "children": [c.to_dict() for c in self.children]}


@dataclass
class FaqItem:
    question: str
    answer: str

    def to_dict(self) -> Dict[str, str]:
        return {"question": self.question, "answer": self.answer}


@dataclass
class RecommendationBundle:
    """Human-facing SEO artifacts built from an AnalysisResult."""
    title: str
    meta_description: str
    outline: List[OutlineNode]
    faq: List[FaqItem]
    structured_data: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "meta_description": self.meta_description,
            "outline": [n.to_dict() for n in self.outline],
            "faq": [f.to_dict() for f in self.faq],
            "structured_data": self.structured_data,
        }
