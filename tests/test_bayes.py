"""Tests for the bag-of-words Naive Bayes classifier."""

from __future__ import annotations

import math

import pytest

from expense_classifier.bayes import (
    BayesTextClassifier,
    NaiveBayesModel,
    extract_terms,
    stem_text,
)
from expense_classifier.models import Category

FOOD_DOCS = ["pizza lunch", "burger meal", "chicken dinner", "pasta lunch"]
TRANSPORT_DOCS = ["bus ride", "taxi ride", "train ticket", "jeepney ride"]


@pytest.fixture
def trained() -> BayesTextClassifier:
    clf = BayesTextClassifier(alpha=0.1)
    for doc in FOOD_DOCS:
        clf.add_document(doc, Category.FOOD)
    for doc in TRANSPORT_DOCS:
        clf.add_document(doc, Category.TRANSPORTATION)
    clf.train()
    return clf


# ---------------------------------------------------------------------------
# Term extraction
# ---------------------------------------------------------------------------


class TestTerms:
    def test_stems_and_drops_stopwords(self) -> None:
        assert extract_terms("Paying the bills") == ["pay", "bill"]

    def test_stem_text_keeps_stopwords(self) -> None:
        assert stem_text("paying the bills") == "pay the bill"


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class TestNaiveBayesModel:
    def test_length_mismatch(self) -> None:
        with pytest.raises(ValueError, match="same length"):
            NaiveBayesModel().fit([["a"]], [])

    def test_probabilities_sum_to_one(self) -> None:
        model = NaiveBayesModel(alpha=1.0).fit(
            [["pizza"], ["bus"]], [Category.FOOD, Category.TRANSPORTATION]
        )
        proba = model.predict_proba(["pizza"])
        assert math.isclose(sum(proba.values()), 1.0)
        assert proba[Category.FOOD] > proba[Category.TRANSPORTATION]

    def test_unseen_terms_fall_back_to_priors(self) -> None:
        model = NaiveBayesModel().fit(
            [["pizza"], ["rice"], ["bus"]],
            [Category.FOOD, Category.FOOD, Category.TRANSPORTATION],
        )
        proba = model.predict_proba(["zzz"])
        assert proba[Category.FOOD] == pytest.approx(2 / 3)

    def test_classes_follow_category_order(self) -> None:
        model = NaiveBayesModel().fit(
            [["x"], ["y"]], [Category.SHOPPING, Category.FOOD]
        )
        assert model.classes_ == [Category.FOOD, Category.SHOPPING]

    def test_unfitted_returns_empty(self) -> None:
        assert NaiveBayesModel().predict_proba(["pizza"]) == {}


# ---------------------------------------------------------------------------
# Incremental classifier
# ---------------------------------------------------------------------------


class TestBayesTextClassifier:
    def test_untrained_is_safe(self) -> None:
        clf = BayesTextClassifier()
        clf.add_document("pizza", Category.FOOD)
        assert clf.classify("pizza") == Category.OTHER
        assert clf.get_classifications("pizza") == []
        assert clf.is_trained is False

    def test_classify(self, trained: BayesTextClassifier) -> None:
        assert trained.classify("pizza dinner") == Category.FOOD
        assert trained.classify("taxi") == Category.TRANSPORTATION

    def test_classifications_sorted_descending(self, trained: BayesTextClassifier) -> None:
        ranked = trained.get_classifications("chicken lunch")
        scores = [c.score for c in ranked]
        assert scores == sorted(scores, reverse=True)
        assert ranked[0].label == Category.FOOD
        assert ranked[0].score > 0.6

    def test_new_documents_need_train(self, trained: BayesTextClassifier) -> None:
        for _ in range(5):
            trained.add_document("netflix", Category.ENTERTAINMENT)
        assert Category.ENTERTAINMENT not in {c.label for c in trained.get_classifications("netflix")}
        trained.retrain()
        assert trained.classify("netflix") == Category.ENTERTAINMENT

    def test_duplicates_shift_weight(self) -> None:
        clf = BayesTextClassifier(alpha=0.1)
        clf.add_document("coffee", Category.FOOD)
        clf.add_document("coffee", Category.SHOPPING)
        clf.add_document("coffee", Category.SHOPPING)
        clf.train()
        assert clf.classify("coffee") == Category.SHOPPING

    def test_document_cap(self) -> None:
        clf = BayesTextClassifier(max_documents=2)
        for doc in ("a", "b", "c"):
            clf.add_document(doc, Category.OTHER)
        assert clf.document_count == 2

    def test_train_without_documents_is_noop(self) -> None:
        clf = BayesTextClassifier()
        clf.train()
        assert clf.is_trained is False

    def test_reset(self, trained: BayesTextClassifier) -> None:
        trained.reset()
        assert trained.is_trained is False
        assert trained.classify("pizza") == Category.OTHER
