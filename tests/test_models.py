"""Tests for data models -- Category, CorrectionEntry, PredictionResult."""

from __future__ import annotations

import pytest

from expense_classifier.models import (
    CATEGORIES,
    Category,
    CorrectionEntry,
    PredictionResult,
    TrainingExample,
    normalize_text,
)

# ---------------------------------------------------------------------------
# Category tests
# ---------------------------------------------------------------------------


class TestCategory:
    """Tests for the Category enum."""

    def test_fixed_set(self) -> None:
        assert [c.value for c in CATEGORIES] == [
            "Food", "Bill", "Transportation", "Entertainment",
            "Healthcare", "Shopping", "Other",
        ]

    def test_parse_member(self) -> None:
        assert Category.parse(Category.BILL) is Category.BILL

    def test_parse_case_insensitive(self) -> None:
        assert Category.parse("food") is Category.FOOD
        assert Category.parse("  TRANSPORTATION ") is Category.TRANSPORTATION

    def test_parse_unknown_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown category"):
            Category.parse("Groceries")

    def test_parse_non_string_raises(self) -> None:
        with pytest.raises(ValueError):
            Category.parse(42)  # type: ignore[arg-type]

    def test_string_equality(self) -> None:
        assert Category.FOOD == "Food"


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


class TestNormalizeText:
    def test_lowercases_and_trims(self) -> None:
        assert normalize_text("  Jeep FARE \n") == "jeep fare"


class TestTrainingExample:
    def test_is_immutable(self) -> None:
        example = TrainingExample(features=(0.0,) * 7, label=Category.FOOD)
        with pytest.raises(AttributeError):
            example.label = Category.BILL  # type: ignore[misc]


class TestCorrectionEntry:
    def test_to_dict(self) -> None:
        entry = CorrectionEntry(text="egg", category=Category.BILL, count=2)
        assert entry.to_dict() == {"text": "egg", "category": "Bill", "count": 2}


class TestPredictionResult:
    def test_defaults(self) -> None:
        result = PredictionResult(Category.OTHER)
        assert result.confidence == 0.0
        assert result.source == "fallback"
        assert result.was_adjusted is False

    def test_to_dict(self) -> None:
        result = PredictionResult(
            Category.FOOD,
            confidence=0.123456,
            source="history",
            was_adjusted=True,
            adjustment_reason="historical_override",
        )
        d = result.to_dict()
        assert d["expense_type"] == "Food"
        assert d["confidence"] == 0.1235
        assert d["was_adjusted"] is True
        assert d["adjustment_reason"] == "historical_override"
