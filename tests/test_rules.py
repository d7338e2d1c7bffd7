"""Tests for keyword rules and fuzzy matching."""

from __future__ import annotations

import pytest

from expense_classifier.models import Category
from expense_classifier.rules import (
    CATEGORY_KEYWORDS,
    KeywordRuleEngine,
    fuzzy_match,
    misspelling_variants,
    similarity,
    tokenize,
)


@pytest.fixture
def engine() -> KeywordRuleEngine:
    return KeywordRuleEngine()


# ---------------------------------------------------------------------------
# Rule engine
# ---------------------------------------------------------------------------


class TestKeywordRuleEngine:
    """Tests for rule ordering and matching semantics."""

    @pytest.mark.parametrize("text", ["jeep", "jeep fare", "taxi to work", "gas", "bus"])
    def test_transport_shortcut(self, engine: KeywordRuleEngine, text: str) -> None:
        assert engine.match(text) == Category.TRANSPORTATION

    def test_shortcut_beats_dictionaries(self, engine: KeywordRuleEngine) -> None:
        # "rice" is a Food keyword, "fare" short-circuits first.
        assert engine.match("rice fare") == Category.TRANSPORTATION

    def test_single_word_needs_whole_token(self, engine: KeywordRuleEngine) -> None:
        assert engine.match("business trip") is None

    def test_single_word_ignores_partial_words(self, engine: KeywordRuleEngine) -> None:
        # "pen" is a Shopping keyword, "pending" is not.
        assert engine.match("pending") is None

    def test_phrase_matches_by_substring(self, engine: KeywordRuleEngine) -> None:
        assert engine.match("paid the electric bill today") == Category.BILL

    def test_phrase_needs_full_phrase(self, engine: KeywordRuleEngine) -> None:
        assert engine.match("electric fan") is None

    def test_first_dictionary_wins(self, engine: KeywordRuleEngine) -> None:
        # Food is declared before Shopping.
        assert engine.match("chicken and shoes") == Category.FOOD

    def test_dictionary_order_is_declaration_order(self) -> None:
        assert list(CATEGORY_KEYWORDS) == [
            Category.FOOD,
            Category.BILL,
            Category.TRANSPORTATION,
            Category.ENTERTAINMENT,
            Category.HEALTHCARE,
            Category.SHOPPING,
        ]

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("burgir", Category.FOOD),
            ("monthly rent", Category.BILL),
            ("netflix", Category.ENTERTAINMENT),
            ("dentist", Category.HEALTHCARE),
            ("new laptop", Category.SHOPPING),
            ("parking fee", Category.TRANSPORTATION),
        ],
    )
    def test_category_keywords(
        self, engine: KeywordRuleEngine, text: str, expected: Category
    ) -> None:
        assert engine.match(text) == expected

    def test_punctuation_is_ignored(self, engine: KeywordRuleEngine) -> None:
        assert engine.match("pizza!") == Category.FOOD

    def test_no_match(self, engine: KeywordRuleEngine) -> None:
        assert engine.match("egg") is None

    def test_empty(self, engine: KeywordRuleEngine) -> None:
        assert engine.match("") is None
        assert engine.match("   ") is None

    def test_custom_dictionaries(self) -> None:
        engine = KeywordRuleEngine(
            transport_shortcut=(),
            keywords={Category.HEALTHCARE: ("gym",)},
        )
        assert engine.match("gym") == Category.HEALTHCARE
        assert engine.match("jeep") is None


class TestTokenize:
    def test_strips_punctuation(self) -> None:
        assert tokenize("Jeep, fare: 20!") == ["jeep", "fare", "20"]


# ---------------------------------------------------------------------------
# Fuzzy matching
# ---------------------------------------------------------------------------


class TestFuzzyMatch:
    def test_identical(self) -> None:
        assert similarity("pizza", "pizza") == 1.0
        assert fuzzy_match("pizza", "pizza")

    def test_similarity_formula(self) -> None:
        # One substitution over six characters.
        assert similarity("burgir", "burger") == pytest.approx(1 - 1 / 6)

    def test_below_threshold(self) -> None:
        assert not fuzzy_match("pisa", "pizza")  # 1 - 2/5 = 0.6

    def test_custom_threshold(self) -> None:
        assert fuzzy_match("pisa", "pizza", threshold=0.6)

    def test_empty_strings(self) -> None:
        assert similarity("", "") == 1.0
        assert similarity("", "abc") == 0.0


class TestMisspellingVariants:
    def test_known_word(self) -> None:
        assert misspelling_variants("burger") == ["burgei", "burgir"]

    def test_fuzzy_recognition(self) -> None:
        assert misspelling_variants("cheese burgers") == ["burgei", "burgir"]

    def test_variant_in_text_not_repeated(self) -> None:
        assert misspelling_variants("burgir") == ["burgei"]

    def test_unknown_word(self) -> None:
        assert misspelling_variants("electric bill") == []
