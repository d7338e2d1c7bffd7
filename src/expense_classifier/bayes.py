"""Bag-of-words Naive Bayes classifier trained incrementally on expense text.

Documents are accumulated with :meth:`BayesTextClassifier.add_document` and
only take effect once :meth:`BayesTextClassifier.train` recomputes the
probability tables. Each training pass builds a fresh :class:`NaiveBayesModel`
and swaps it in atomically, so readers never see a half-built table.

Tokens are lower-cased, stripped of English stopwords and reduced with the
Porter stemmer, so ``paying bills`` and ``pay bill`` share features.
"""

from __future__ import annotations

import math
import threading
from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field
from typing import Optional

from nltk.stem import PorterStemmer

from .models import CATEGORIES, Category, Classification
from .rules import tokenize

_STOP_WORDS: frozenset[str] = frozenset({
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "be",
    "been", "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "could", "should", "may", "might", "can", "must",
    "not", "no", "so", "if", "then", "than", "that", "this",
    "these", "those", "it", "its", "he", "she", "they", "them", "their",
    "his", "her", "our", "your", "we", "you", "my", "me", "i",
    "some", "any", "just", "also", "very",
})

_stemmer = PorterStemmer()


def extract_terms(text: str) -> list[str]:
    """Tokenize, drop stopwords and stem."""
    return [_stemmer.stem(t) for t in tokenize(text) if t not in _STOP_WORDS]


def stem_text(text: str) -> str:
    """Return ``text`` with every token stemmed, stopwords kept."""
    return " ".join(_stemmer.stem(t) for t in tokenize(text))


# ---------------------------------------------------------------------------
# Multinomial Naive Bayes
# ---------------------------------------------------------------------------


@dataclass
class NaiveBayesModel:
    """Multinomial Naive Bayes over term counts with Laplace smoothing.

    Args:
        alpha: Laplace smoothing parameter.
    """

    alpha: float = 1.0

    # Learned parameters
    classes_: list[Category] = field(default_factory=list, repr=False)
    class_log_prior_: dict[Category, float] = field(default_factory=dict, repr=False)
    feature_log_prob_: dict[Category, dict[str, float]] = field(default_factory=dict, repr=False)
    _vocabulary: frozenset[str] = field(default_factory=frozenset, repr=False)

    def fit(
        self,
        documents: list[list[str]],
        labels: list[Category],
    ) -> "NaiveBayesModel":
        """Learn priors and term likelihoods from tokenized documents.

        Raises:
            ValueError: If documents and labels have different lengths.
        """
        if len(documents) != len(labels):
            raise ValueError(
                f"documents ({len(documents)}) and labels ({len(labels)}) must have same length"
            )

        class_counts: Counter[Category] = Counter(labels)
        term_counts: dict[Category, Counter[str]] = defaultdict(Counter)
        vocabulary: set[str] = set()
        for terms, label in zip(documents, labels):
            term_counts[label].update(terms)
            vocabulary.update(terms)

        self._vocabulary = frozenset(vocabulary)
        self.classes_ = [c for c in CATEGORIES if class_counts[c] > 0]
        n_total = len(labels)

        self.class_log_prior_ = {
            cls: math.log(class_counts[cls] / n_total) for cls in self.classes_
        }

        # P(term|class) = (count(term, class) + alpha) / (total(class) + alpha * |V|)
        vocab_size = len(self._vocabulary)
        self.feature_log_prob_ = {}
        for cls in self.classes_:
            counts = term_counts[cls]
            denominator = sum(counts.values()) + self.alpha * vocab_size
            self.feature_log_prob_[cls] = {
                term: math.log((counts.get(term, 0) + self.alpha) / denominator)
                for term in self._vocabulary
            }

        return self

    @property
    def is_fitted(self) -> bool:
        return bool(self.classes_)

    def predict_proba(self, terms: list[str]) -> dict[Category, float]:
        """Posterior probability per class, via log-sum-exp."""
        if not self.classes_:
            return {}
        log_scores = self._compute_log_scores(terms)
        max_score = max(log_scores.values())
        exp_scores = {cls: math.exp(s - max_score) for cls, s in log_scores.items()}
        total = sum(exp_scores.values())
        return {cls: score / total for cls, score in exp_scores.items()}

    def _compute_log_scores(self, terms: list[str]) -> dict[Category, float]:
        scores: dict[Category, float] = {}
        for cls in self.classes_:
            score = self.class_log_prior_[cls]
            log_probs = self.feature_log_prob_[cls]
            for term in terms:
                if term in log_probs:
                    score += log_probs[term]
            scores[cls] = score
        return scores


# ---------------------------------------------------------------------------
# Incremental wrapper
# ---------------------------------------------------------------------------


class BayesTextClassifier:
    """Accumulates labeled documents and serves the latest trained model.

    Args:
        alpha: Laplace smoothing passed to every trained model.
        max_documents: Oldest documents are dropped beyond this many.
    """

    def __init__(self, alpha: float = 1.0, max_documents: Optional[int] = None) -> None:
        self.alpha = alpha
        self._documents: deque[tuple[list[str], Category]] = deque(maxlen=max_documents)
        self._model = NaiveBayesModel(alpha=alpha)
        self._lock = threading.Lock()

    @property
    def document_count(self) -> int:
        return len(self._documents)

    @property
    def is_trained(self) -> bool:
        return self._model.is_fitted

    def add_document(self, text: str, category: Category) -> None:
        """Record a labeled document; repeats add weight."""
        with self._lock:
            self._documents.append((extract_terms(text), category))

    def train(self) -> None:
        """Rebuild the probability tables from every recorded document."""
        with self._lock:
            documents = [terms for terms, _ in self._documents]
            labels = [label for _, label in self._documents]
        if not documents:
            return
        model = NaiveBayesModel(alpha=self.alpha).fit(documents, labels)
        self._model = model

    retrain = train

    def reset(self) -> None:
        """Forget the trained tables, keeping recorded documents."""
        self._model = NaiveBayesModel(alpha=self.alpha)

    def get_classifications(self, text: str) -> list[Classification]:
        """Labels with posterior scores, best first. Empty until trained."""
        model = self._model
        proba = model.predict_proba(extract_terms(text))
        ranked = sorted(proba.items(), key=lambda x: x[1], reverse=True)
        return [Classification(label=label, score=score) for label, score in ranked]

    def classify(self, text: str) -> Category:
        """Most probable label, or Other when no model is trained yet."""
        ranked = self.get_classifications(text)
        return ranked[0].label if ranked else Category.OTHER
