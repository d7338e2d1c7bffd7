"""Runtime settings for the expense classifier.

Defaults reproduce the tuned behavior of the production classifier. Every
field can be overridden through an ``EXPENSE_CLASSIFIER_*`` environment
variable (or a ``.env`` file picked up by python-dotenv); the database URL
comes from ``DATABASE_URL``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "EXPENSE_CLASSIFIER_"
DEFAULT_DATABASE_URL = "sqlite:///expense_classifier.db"


@dataclass
class ClassifierSettings:
    """Tunable parameters for the cascade, the models and persistence.

    Attributes:
        correction_threshold: Occurrences of a correction before it is
            trusted by ``predict`` and eligible for flushing.
        bayes_confidence_threshold: Minimum Bayes posterior (exclusive)
            for its label to be accepted.
        bayes_alpha: Laplace smoothing of the Bayes term likelihoods.
        neural_confidence_floor: Minimum activation for the network's top
            label. ``None`` accepts any non-Other label.
        retrain_every: Retrain both models every N learned examples.
        max_training_examples: Cap on the in-memory training buffer.
        learning_rate: Backpropagation step size.
        momentum: Fraction of the previous weight update carried over.
        full_train_iterations: Iteration cap for a full ``train``.
        incremental_iterations: Iteration cap for periodic retrains.
        error_threshold: Training stops once mean error drops below this.
        train_timeout: Wall-clock seconds allowed for a full ``train``.
        background_training: Run periodic retrains on a worker thread.
        history_confidence_threshold: Predictions below this confidence
            are checked against the user's expense history.
        history_frequency_threshold: Repeat count that marks an
            otherwise unclassified item as Shopping.
        historical_limit: Maximum historical expenses read at bootstrap.
        seed: Seed for network weight initialization.
        database_url: SQLAlchemy URL of the storage collaborator.
    """

    correction_threshold: int = 1
    bayes_confidence_threshold: float = 0.6
    bayes_alpha: float = 0.1
    neural_confidence_floor: Optional[float] = None
    retrain_every: int = 5
    max_training_examples: int = 5000
    learning_rate: float = 0.3
    momentum: float = 0.1
    full_train_iterations: int = 300
    incremental_iterations: int = 200
    error_threshold: float = 0.01
    train_timeout: float = 10.0
    background_training: bool = True
    history_confidence_threshold: float = 0.7
    history_frequency_threshold: int = 3
    historical_limit: int = 1000
    seed: int = 42
    database_url: str = DEFAULT_DATABASE_URL

    @classmethod
    def from_env(cls, env: Optional[dict[str, str]] = None) -> "ClassifierSettings":
        """Build settings from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ``. When omitted, a
                ``.env`` file in the working directory is loaded first.

        Raises:
            ValueError: If a variable cannot be converted to its field type.
        """
        if env is None:
            load_dotenv()
            env = dict(os.environ)

        overrides: dict[str, object] = {}
        for f in fields(cls):
            if f.name == "database_url":
                raw = env.get("DATABASE_URL")
            else:
                raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            overrides[f.name] = _coerce(f.name, raw)
        return cls(**overrides)


def _coerce(name: str, raw: str) -> object:
    default = getattr(ClassifierSettings, name, None)
    if name == "neural_confidence_floor":
        return None if raw.lower() in ("none", "off") else float(raw)
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"{ENV_PREFIX}{name.upper()} must be a boolean, got {raw!r}")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw
