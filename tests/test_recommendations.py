"""
Recommendation Builder Tests
"""

import pytest

from src.analysis import analyze, build_recommendations
from src.analysis.models import AnalysisResult, SearchIntent
from src.analysis.recommendations import (
    META_MAX_CHARS,
    TITLE_MAX_CHARS,
    build_meta_description,
    build_title,
)


class TestTitle:
    """Tests for the suggested title."""

    def test_prefix_by_intent(self):
        assert build_title("Brake Pads", "", SearchIntent.TRANSACTIONAL) == "Buy Brake Pads"
        assert build_title("Brake Pads", "", SearchIntent.COMMERCIAL) == "Best Brake Pads"
        assert build_title("Brake Pads", "", SearchIntent.INFORMATIONAL) == "Guide: Brake Pads"
        assert build_title("Brake Pads", "", SearchIntent.LOCAL) == "Guide: Brake Pads"

    def test_entity_preferred_over_title(self):
        assert build_title("Brake Pads", "Brembo", SearchIntent.COMMERCIAL) == "Best Brembo"

    def test_multibyte_title_truncated_on_characters(self):
        title = "Ünïcødé Öl für Motoren ☃ " * 10
        suggested = build_title(title, "", SearchIntent.INFORMATIONAL)
        assert len(suggested) == TITLE_MAX_CHARS
        assert suggested.startswith("Guide: Ünïcødé")
        # Still encodes cleanly: no split characters
        suggested.encode("utf-8")


class TestMetaDescription:

    def test_call_to_action_by_intent(self):
        assert build_meta_description("Oil", "", SearchIntent.TRANSACTIONAL) == \
            "Oil – Compare prices and order today."
        assert build_meta_description("Oil", "", SearchIntent.COMMERCIAL).endswith(
            "See top picks and comparisons."
        )
        assert build_meta_description("Oil", "", SearchIntent.LOCAL).endswith(
            "Learn key facts and best practices."
        )

    def test_truncated(self):
        meta = build_meta_description("ß" * 400, "", SearchIntent.INFORMATIONAL)
        assert len(meta) == META_MAX_CHARS


class TestBundle:
    """Tests for the full recommendation bundle."""

    @pytest.fixture
    def bundle(self):
        analysis = analyze(
            "<p>Castrol Edge and Mobil One compared. Valvoline Advanced is cheaper.</p>",
            "best engine oil",
        )
        return build_recommendations(analysis, "Engine Oil Comparison")

    def test_title_uses_first_entity(self, bundle):
        assert bundle.title == "Best Castrol Edge"

    def test_outline_bounded(self, bundle):
        assert 0 < len(bundle.outline) <= 8
        assert bundle.outline[0].heading == "Castrol Edge"
        assert all(node.children == [] for node in bundle.outline)

    def test_outline_suggestions_title_cased(self):
        analysis = AnalysisResult(suggestions=["engine oil", "oil"])
        bundle = build_recommendations(analysis, "Oil")
        assert [n.heading for n in bundle.outline] == ["Engine Oil", "Oil"]

    def test_faq_has_three_items(self, bundle):
        questions = [item.question for item in bundle.faq]
        assert questions == [
            "What is Castrol Edge?",
            "How to use Mobil One?",
            "What are the benefits of Valvoline Advanced?",
        ]

    def test_faq_falls_back_to_title(self):
        bundle = build_recommendations(AnalysisResult(), "Brake Pads")
        assert bundle.faq[0].question == "What is Brake Pads?"
        assert bundle.faq[1].question == "How to use it?"
        assert bundle.faq[2].question == "What are the benefits of Brake Pads?"

    def test_structured_data(self, bundle):
        data = bundle.structured_data
        assert data["@context"] == "https://schema.org"
        article, faq_page = data["@graph"]
        assert article["@type"] == "Article"
        assert article["headline"] == "Engine Oil Comparison"
        assert article["description"] == bundle.meta_description
        assert faq_page["@type"] == "FAQPage"
        assert len(faq_page["mainEntity"]) == 3
        assert faq_page["mainEntity"][0]["acceptedAnswer"]["@type"] == "Answer"

    def test_to_dict_shape(self, bundle):
        data = bundle.to_dict()
        assert set(data) == {"title", "meta_description", "outline", "faq", "structured_data"}
        assert set(data["outline"][0]) == {"h2", "children"}

    def test_deterministic(self):
        analysis = analyze("Mobil One review", "top oil")
        assert build_recommendations(analysis, "Oil").to_dict() == \
            build_recommendations(analysis, "Oil").to_dict()
