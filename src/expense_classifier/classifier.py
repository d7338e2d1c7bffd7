"""Expense classification service combining rules, Bayes and a neural net.

Prediction walks an ordered cascade and stops at the first stage that
commits to a category:

1. explicit user corrections held in memory
2. per-user pattern overrides supplied by the caller
3. keyword rules
4. Bayes posterior above the confidence gate, unless it says Other
5. neural network top activation, unless it says Other
6. Other

Learning records the correction, feeds both statistical models and retrains
them every few examples. Retrains build new model snapshots off to the side
and swap them in, so predictions keep reading the previous snapshot while a
retrain is in flight.

Example::

    classifier = ExpenseClassifier(store=CorrectionStore(Database(url)))
    classifier.learn("egg", "Bill", user_id=7)
    classifier.predict("egg")          # Category.BILL
    classifier.persist_corrections(7)  # flush to expense_learning_data
"""

from __future__ import annotations

import logging
import re
import threading
from collections import Counter, deque
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Mapping, Optional, Protocol, Union

from sqlalchemy.exc import SQLAlchemyError

from .bayes import BayesTextClassifier, stem_text
from .config import ClassifierSettings
from .corrections import CorrectionCache
from .features import FeatureExtractor, PartOfSpeechTagger
from .models import Category, PredictionResult, TrainingExample, normalize_text
from .neural import NeuralClassifier, TrainingStats
from .rules import KeywordRuleEngine, misspelling_variants
from .storage import CorrectionStore
from .training_data import BACKFILL_EXAMPLES, DEFAULT_BACKFILL_TARGET, iter_seed_examples

logger = logging.getLogger(__name__)

UserPatterns = Mapping[str, Union[Category, str]]

_MONEY_RE = re.compile(
    r"[$€£₱]\s?\d|\d+(?:\.\d+)?\s?(?:php|usd|eur|pesos?|dollars?)\b"
)

# Bayes documents one example can produce: the text, its stemmed form, "payment".
DOCUMENTS_PER_EXAMPLE = 3


# ---------------------------------------------------------------------------
# Cascade stages
# ---------------------------------------------------------------------------


class ClassificationStrategy(Protocol):
    """One stage of the cascade: commit to a result or pass with ``None``."""

    name: str

    def attempt(
        self, text: str, user_patterns: Optional[UserPatterns]
    ) -> Optional[PredictionResult]:
        ...


class CorrectionStrategy:
    name = "correction"

    def __init__(self, cache: CorrectionCache, threshold: int) -> None:
        self.cache = cache
        self.threshold = threshold

    def attempt(self, text, user_patterns):
        category = self.cache.lookup(text, self.threshold)
        if category is None:
            return None
        return PredictionResult(category, 1.0, self.name)


class UserPatternStrategy:
    name = "user_pattern"

    def attempt(self, text, user_patterns):
        if not user_patterns or text not in user_patterns:
            return None
        try:
            category = Category.parse(user_patterns[text])
        except ValueError:
            logger.warning("Ignoring user pattern %r -> %r", text, user_patterns[text])
            return None
        return PredictionResult(category, 1.0, self.name)


class RuleStrategy:
    name = "rule"

    def __init__(self, engine: KeywordRuleEngine) -> None:
        self.engine = engine

    def attempt(self, text, user_patterns):
        category = self.engine.match(text)
        if category is None:
            return None
        return PredictionResult(category, 1.0, self.name)


class BayesStrategy:
    name = "bayes"

    def __init__(self, bayes: BayesTextClassifier, threshold: float) -> None:
        self.bayes = bayes
        self.threshold = threshold

    def attempt(self, text, user_patterns):
        ranked = self.bayes.get_classifications(text)
        if not ranked:
            return None
        top = ranked[0]
        if top.label == Category.OTHER or top.score <= self.threshold:
            return None
        return PredictionResult(top.label, top.score, self.name)


class NeuralStrategy:
    name = "neural"

    def __init__(
        self,
        network: Callable[[], NeuralClassifier],
        features: FeatureExtractor,
        floor: Optional[float] = None,
    ) -> None:
        self.network = network
        self.features = features
        self.floor = floor

    def attempt(self, text, user_patterns):
        network = self.network()
        if not network.is_trained:
            return None
        activations = network.run(self.features.extract(text))
        category, activation = next(iter(activations.items()))
        if category == Category.OTHER:
            return None
        if self.floor is not None and activation < self.floor:
            return None
        return PredictionResult(category, activation, self.name)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class ExpenseClassifier:
    """Self-correcting expense classifier.

    One instance is meant to be shared by the whole application and handed
    to request handlers.

    Args:
        settings: Tunables; defaults to :class:`ClassifierSettings`.
        store: Persistence for corrections and history. Without one,
            ``persist_corrections`` raises and history lookups are skipped.
        tagger: Part-of-speech tagger for feature extraction.
        bootstrap: Seed and train on the curated examples immediately.
    """

    def __init__(
        self,
        settings: Optional[ClassifierSettings] = None,
        store: Optional[CorrectionStore] = None,
        tagger: Optional[PartOfSpeechTagger] = None,
        bootstrap: bool = True,
    ) -> None:
        self.settings = settings or ClassifierSettings()
        self.store = store
        self.features = FeatureExtractor(tagger)
        self.rules = KeywordRuleEngine()
        self.corrections = CorrectionCache()
        self.bayes = BayesTextClassifier(
            alpha=self.settings.bayes_alpha,
            max_documents=self.settings.max_training_examples * DOCUMENTS_PER_EXAMPLE,
        )
        self._network = self._new_network()

        self._lock = threading.RLock()
        self._examples: deque[TrainingExample] = deque(
            maxlen=self.settings.max_training_examples
        )
        self._examples_total = 0
        self._trained_through = -1
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Optional[Future] = None

        self._strategies: list[ClassificationStrategy] = [
            CorrectionStrategy(self.corrections, self.settings.correction_threshold),
            UserPatternStrategy(),
            RuleStrategy(self.rules),
            BayesStrategy(self.bayes, self.settings.bayes_confidence_threshold),
            NeuralStrategy(
                lambda: self._network,
                self.features,
                self.settings.neural_confidence_floor,
            ),
        ]

        if bootstrap:
            self.initialize_with_basic_data()

    def __enter__(self) -> "ExpenseClassifier":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def strategies(self) -> list[str]:
        """Cascade stage names in evaluation order."""
        return [s.name for s in self._strategies]

    @property
    def example_count(self) -> int:
        """Examples taught over the lifetime of this instance."""
        return self._examples_total

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict(self, text: object, user_patterns: Optional[UserPatterns] = None) -> Category:
        """Category for ``text``. Never raises."""
        return self.predict_detailed(text, user_patterns).category

    def predict_detailed(
        self,
        text: object,
        user_patterns: Optional[UserPatterns] = None,
    ) -> PredictionResult:
        """Run the cascade and report which stage decided and how sure it was.

        Empty or non-string input resolves to Other with zero confidence, and
        so does any unexpected failure inside a stage.
        """
        try:
            if not isinstance(text, str) or not text.strip():
                return PredictionResult(Category.OTHER, 0.0, "empty")

            normalized = normalize_text(text)
            for strategy in self._strategies:
                result = strategy.attempt(normalized, user_patterns)
                if result is not None:
                    return result
            return PredictionResult(Category.OTHER, 0.0, "fallback")
        except Exception:
            logger.exception("Prediction failed for %r", text)
            return PredictionResult(Category.OTHER, 0.0, "error")

    def predict_with_history(
        self,
        text: object,
        user_id: Optional[int] = None,
        user_patterns: Optional[UserPatterns] = None,
    ) -> PredictionResult:
        """Predict, then fall back on the user's own filing history.

        Uncertain predictions (below ``history_confidence_threshold`` or
        Other) take the category the user most often chose for this item.
        Items with no such category but filed repeatedly become Shopping.
        """
        result = self.predict_detailed(text, user_patterns)
        if self.store is None or not isinstance(text, str) or not text.strip():
            return result
        if (
            result.category != Category.OTHER
            and result.confidence >= self.settings.history_confidence_threshold
        ):
            return result

        try:
            history = self.store.item_history(normalize_text(text), user_id)
        except SQLAlchemyError:
            logger.exception("Error checking item history for %r", text)
            return result

        if history.top_category is not None:
            adjusted = history.top_category
        elif history.occurrences >= self.settings.history_frequency_threshold:
            adjusted = Category.SHOPPING
        else:
            return result

        if adjusted == result.category:
            return result
        reason = "historical_override" if result.category == Category.OTHER else "frequency_override"
        return PredictionResult(
            adjusted,
            result.confidence,
            "history",
            was_adjusted=True,
            adjustment_reason=reason,
        )

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def learn(
        self,
        text: str,
        category: Union[Category, str, None],
        user_id: Optional[int] = None,
        immediate_persist: bool = False,
    ) -> bool:
        """Teach the classifier that ``text`` belongs to ``category``.

        The correction is authoritative for ``predict`` right away; the
        statistical models pick it up on the next retrain, which runs every
        ``retrain_every`` examples.

        Raises:
            ValueError: On empty text or an unknown category.
            sqlalchemy.exc.SQLAlchemyError: If ``immediate_persist`` fails.
        """
        try:
            normalized = normalize_text(text or "")
            if not normalized:
                raise ValueError("Cannot learn from empty text")
            label = Category.parse(category) if category else Category.OTHER

            self.corrections.record(normalized, label)
            total = self.add_training_example(normalized, label)

            if immediate_persist:
                self.persist_corrections(user_id)

            if total % self.settings.retrain_every == 0:
                self._schedule_retrain()
            return True
        except Exception:
            logger.exception(
                "Learning failed: text=%r category=%r user_id=%r", text, category, user_id
            )
            raise

    def add_training_example(self, text: str, category: Category) -> int:
        """Feed one labeled text to both models without retraining.

        Returns:
            Total number of examples taught so far.
        """
        normalized = normalize_text(text)
        self.bayes.add_document(normalized, category)
        for variant in self._linguistic_variants(normalized):
            self.bayes.add_document(variant, category)

        example = TrainingExample(tuple(self.features.extract(normalized)), category)
        with self._lock:
            self._examples.append(example)
            self._examples_total += 1
            return self._examples_total

    @staticmethod
    def _linguistic_variants(text: str) -> list[str]:
        variants = []
        stemmed = stem_text(text)
        if stemmed and stemmed != text:
            variants.append(stemmed)
        if _MONEY_RE.search(text):
            variants.append("payment")
        return variants

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def persist_corrections(self, user_id: Optional[int] = None) -> int:
        """Flush trusted corrections to storage in one transaction.

        Flushed entries leave the cache only after the commit succeeds; on
        failure the cache is untouched and the error is re-raised.

        Returns:
            Number of corrections written.

        Raises:
            RuntimeError: If no store is configured.
        """
        if self.store is None:
            raise RuntimeError("No correction store configured")

        entries = self.corrections.pending(self.settings.correction_threshold)
        if not entries:
            return 0

        try:
            written = self.store.persist(entries, user_id)
        except Exception:
            logger.exception(
                "Failed to persist corrections: %s", [e.to_dict() for e in entries]
            )
            raise

        self.corrections.discard(entries)
        logger.info("Persisted %d corrections for user %s", written, user_id)
        return written

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def initialize_with_basic_data(self) -> None:
        """Teach the curated seed vocabulary and train on it."""
        for text, category in iter_seed_examples():
            self.add_training_example(text, category)
            for variant in misspelling_variants(text):
                self.add_training_example(variant, category)
        self.train()

    def load_training_data(self, store: Optional[CorrectionStore] = None) -> int:
        """Train on historical expenses, then even out category counts.

        Categories with fewer historical rows than the busiest one are topped
        up from the curated backfill lists. Failures are logged, not raised.

        Returns:
            Number of examples added, or 0 when loading failed.
        """
        store = store or self.store
        if store is None:
            logger.warning("No store configured; skipping historical training data")
            return 0

        try:
            return self._load_training_data(store)
        except Exception:
            logger.exception("Error loading training data")
            return 0

    def _load_training_data(self, store: CorrectionStore) -> int:
        rows = store.load_historical_expenses(self.settings.historical_limit)
        logger.info("Loaded %d training examples", len(rows))
        if not rows:
            logger.warning("No training data loaded from database")
            return 0

        counts: Counter[Category] = Counter()
        for item_name, expense_type in rows:
            if not item_name or not item_name.strip():
                continue
            try:
                category = Category.parse(expense_type)
            except ValueError:
                logger.warning("Skipping %r with unknown category %r", item_name, expense_type)
                continue
            self.add_training_example(item_name, category)
            counts[category] += 1

        target = max(counts.values()) if counts else DEFAULT_BACKFILL_TARGET
        for category, examples in BACKFILL_EXAMPLES.items():
            for text in examples:
                if counts[category] >= target:
                    break
                self.add_training_example(text, category)
                counts[category] += 1

        self.train()
        return sum(counts.values())

    def train(self) -> Optional[TrainingStats]:
        """Full retrain of both models, bounded by ``train_timeout``.

        Does nothing when no examples arrived since the last training run.
        """
        with self._lock:
            if self._trained_through == self._examples_total:
                return None
        return self._fit(self.settings.full_train_iterations)

    def retrain(self, iterations: Optional[int] = None) -> Optional[TrainingStats]:
        """Incremental retrain, as triggered every ``retrain_every`` examples."""
        return self._fit(iterations or self.settings.incremental_iterations)

    def _fit(self, iterations: int) -> Optional[TrainingStats]:
        with self._lock:
            examples = list(self._examples)
            through = self._examples_total

        try:
            self.bayes.train()
        except Exception:
            logger.exception("Bayes training failed; resetting model")
            self.bayes.reset()

        stats = None
        if examples:
            candidate = self._network.copy()
            try:
                stats = candidate.train(
                    examples,
                    iterations=iterations,
                    error_threshold=self.settings.error_threshold,
                    timeout=self.settings.train_timeout,
                )
            except Exception:
                logger.exception(
                    "Neural training failed on %d examples; reinitializing network",
                    len(examples),
                )
                candidate = self._new_network()
            else:
                logger.info(
                    "Neural network trained on %d examples: %d iterations, error %.4f%s",
                    len(examples),
                    stats.iterations,
                    stats.error,
                    " (timed out)" if stats.timed_out else "",
                )
            with self._lock:
                self._network = candidate

        with self._lock:
            self._trained_through = max(self._trained_through, through)
        return stats

    def _new_network(self) -> NeuralClassifier:
        return NeuralClassifier(
            learning_rate=self.settings.learning_rate,
            momentum=self.settings.momentum,
            seed=self.settings.seed,
        )

    def _schedule_retrain(self) -> None:
        if not self.settings.background_training:
            self.retrain()
            return
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="expense-classifier-train"
                )
            self._pending = self._executor.submit(self.retrain)

    def wait_for_training(self, timeout: Optional[float] = None) -> bool:
        """Block until queued retrains finish. False if ``timeout`` expires."""
        with self._lock:
            pending = self._pending
        if pending is None:
            return True
        try:
            pending.result(timeout=timeout)
        except FutureTimeoutError:
            return False
        return True

    def close(self) -> None:
        """Finish queued retrains and stop the training worker."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
