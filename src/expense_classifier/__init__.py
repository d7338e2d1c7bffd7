"""Expense Classifier -- self-correcting spending category prediction."""

__version__ = "0.1.0"

from .bayes import BayesTextClassifier, NaiveBayesModel
from .classifier import ExpenseClassifier
from .config import ClassifierSettings
from .corrections import CorrectionCache
from .evaluation import CascadeReport, StageTally, evaluate_classifier
from .features import FeatureExtractor, NltkTagger, PartOfSpeechTagger
from .models import (
    Category,
    Classification,
    CorrectionEntry,
    PredictionResult,
    TrainingExample,
)
from .neural import NeuralClassifier, TrainingStats
from .rules import KeywordRuleEngine, fuzzy_match, misspelling_variants
from .storage import CorrectionStore, Database, ItemHistory

__all__ = [
    # Core
    "ExpenseClassifier",
    "ClassifierSettings",
    "Category",
    "PredictionResult",
    # Models and data
    "Classification",
    "CorrectionEntry",
    "TrainingExample",
    # Components
    "BayesTextClassifier",
    "NaiveBayesModel",
    "NeuralClassifier",
    "TrainingStats",
    "FeatureExtractor",
    "NltkTagger",
    "PartOfSpeechTagger",
    "KeywordRuleEngine",
    "fuzzy_match",
    "misspelling_variants",
    "CorrectionCache",
    # Persistence
    "Database",
    "CorrectionStore",
    "ItemHistory",
    # Evaluation
    "CascadeReport",
    "StageTally",
    "evaluate_classifier",
]
