"""
Unit tests for services.flashcard_decoder module.
Tests extraction of flashcards from free-form model output.
"""
import pytest

from bizenglish.core.errors import ParseError
from bizenglish.services.flashcard_decoder import (
    decode_flashcards,
    extract_first_json_array,
    normalize_level,
)


class TestExtractFirstJsonArray:
    """Tests for locating JSON arrays in text."""

    def test_plain_array(self):
        assert extract_first_json_array('[{"a": 1}]') == [{"a": 1}]

    def test_array_inside_code_fence_and_prose(self):
        raw = 'Here you go:\n```json\n[{"term": "KPI"}]\n```\nHope this helps!'
        assert extract_first_json_array(raw) == [{"term": "KPI"}]

    def test_skips_broken_brackets(self):
        raw = 'See [note 1 for details. Result: ["x", "y"]'
        assert extract_first_json_array(raw) == ["x", "y"]

    def test_no_array(self):
        assert extract_first_json_array("no json here") is None


class TestNormalizeLevel:
    """Tests for CEFR level validation."""

    @pytest.mark.parametrize("value,expected", [
        ("B2", "B2"),
        ("c1", "C1"),
        (" a2 ", "A2"),
        ("Advanced", "B1"),
        ("", "B1"),
        (None, "B1"),
        (3, "B1"),
    ])
    def test_levels(self, value, expected):
        assert normalize_level(value) == expected


class TestDecodeFlashcards:
    """Tests for the full decoder contract."""

    def test_decodes_canonical_fields(self):
        raw = """[{"term": "leverage", "definition": "use to advantage",
                  "example_sentence": "We leverage data.", "translation": "nutzen",
                  "common_mistake": "overuse", "correction": "say use",
                  "proficiencyLevel": "C1", "topicTag": "strategy"}]"""
        [card] = decode_flashcards(raw)
        assert card.term == "leverage"
        assert card.example_sentence == "We leverage data."
        assert card.proficiencyLevel == "C1"
        assert card.topicTag == "strategy"

    def test_maps_alias_keys(self):
        raw = """[{"term": "ROI", "definition": "return on investment",
                  "example": "ROI was high.", "german_translation": "Kapitalrendite",
                  "cefr_level": "b2", "topic_tag": "finance"}]"""
        [card] = decode_flashcards(raw)
        assert card.example_sentence == "ROI was high."
        assert card.translation == "Kapitalrendite"
        assert card.proficiencyLevel == "B2"
        assert card.topicTag == "finance"

    def test_invalid_level_defaults_to_b1(self):
        [card] = decode_flashcards('[{"term": "t", "definition": "d", "proficiencyLevel": "expert"}]')
        assert card.proficiencyLevel == "B1"

    def test_drops_invalid_items(self):
        raw = '[{"term": "ok", "definition": "fine"}, "string", {"term": "no definition"}, {"term": " ", "definition": "x"}]'
        cards = decode_flashcards(raw)
        assert [c.term for c in cards] == ["ok"]

    def test_array_nested_in_object(self):
        raw = '{"flashcards": [{"term": "agenda", "definition": "meeting topics"}]}'
        assert decode_flashcards(raw)[0].term == "agenda"

    def test_prefers_first_array_with_valid_cards(self):
        raw = 'Sources [1]. Cards: [{"term": "budget", "definition": "money plan"}]'
        assert decode_flashcards(raw)[0].term == "budget"

    def test_missing_topic_gets_default(self):
        [card] = decode_flashcards('[{"term": "t", "definition": "d"}]')
        assert card.topicTag == "business_general"

    @pytest.mark.parametrize("raw", ["", "   ", "I cannot help with that."])
    def test_no_array_raises(self, raw):
        with pytest.raises(ParseError):
            decode_flashcards(raw)

    def test_no_valid_cards_raises(self):
        with pytest.raises(ParseError):
            decode_flashcards('[{"front": 1}, 42]')
