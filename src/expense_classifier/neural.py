"""Small feed-forward network over the 7 extracted text features.

One hidden layer, sigmoid activations everywhere, one output unit per
category. Trained online with backpropagation and momentum against soft
targets (0.99 for the taught category, 0.01 elsewhere) so the sigmoid never
has to saturate. Pure Python: the network is 7x7x7 and numpy would buy
nothing.
"""

from __future__ import annotations

import copy
import math
import random
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from .features import FEATURE_SIZE
from .models import CATEGORIES, Category, TrainingExample

TARGET_HIGH = 0.99
TARGET_LOW = 0.01


def _sigmoid(x: float) -> float:
    # Clamp to keep math.exp in range for pathological weights.
    if x < -60:
        return 0.0
    if x > 60:
        return 1.0
    return 1 / (1 + math.exp(-x))


@dataclass
class TrainingStats:
    """Summary of one training run."""

    iterations: int
    error: float
    timed_out: bool = False


class NeuralClassifier:
    """Sigmoid multilayer perceptron mapping feature vectors to categories.

    Args:
        hidden_size: Width of the single hidden layer.
        learning_rate: Backpropagation step size.
        momentum: Fraction of the previous update added to the next one.
        binary_threshold: Activation at or above which a unit counts as on.
        seed: Seed for weight initialization.
    """

    def __init__(
        self,
        hidden_size: int = FEATURE_SIZE,
        learning_rate: float = 0.3,
        momentum: float = 0.1,
        binary_threshold: float = 0.5,
        seed: Optional[int] = None,
    ) -> None:
        self.input_size = FEATURE_SIZE
        self.hidden_size = hidden_size
        self.output_size = len(CATEGORIES)
        self.learning_rate = learning_rate
        self.momentum = momentum
        self.binary_threshold = binary_threshold
        self.seed = seed
        self.reset()

    def reset(self) -> None:
        """Discard all learned weights and start from random ones."""
        rng = random.Random(self.seed)

        def matrix(rows: int, cols: int) -> list[list[float]]:
            return [[rng.random() * 0.4 - 0.2 for _ in range(cols)] for _ in range(rows)]

        self._w_hidden = matrix(self.hidden_size, self.input_size)
        self._b_hidden = [rng.random() * 0.4 - 0.2 for _ in range(self.hidden_size)]
        self._w_output = matrix(self.output_size, self.hidden_size)
        self._b_output = [rng.random() * 0.4 - 0.2 for _ in range(self.output_size)]

        self._dw_hidden = [[0.0] * self.input_size for _ in range(self.hidden_size)]
        self._dw_output = [[0.0] * self.hidden_size for _ in range(self.output_size)]
        self.is_trained = False

    def copy(self) -> "NeuralClassifier":
        """Independent copy, used to train without disturbing readers."""
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def run(self, features: Sequence[float]) -> dict[Category, float]:
        """Output activation per category, highest first."""
        _, outputs = self._forward(self._check_input(features))
        ranked = sorted(zip(CATEGORIES, outputs), key=lambda x: x[1], reverse=True)
        return dict(ranked)

    def active_categories(self, features: Sequence[float]) -> list[Category]:
        """Categories whose unit fires at or above the binary threshold."""
        return [c for c, v in self.run(features).items() if v >= self.binary_threshold]

    def _forward(self, inputs: Sequence[float]) -> tuple[list[float], list[float]]:
        hidden = [
            _sigmoid(bias + sum(w * x for w, x in zip(weights, inputs)))
            for weights, bias in zip(self._w_hidden, self._b_hidden)
        ]
        outputs = [
            _sigmoid(bias + sum(w * h for w, h in zip(weights, hidden)))
            for weights, bias in zip(self._w_output, self._b_output)
        ]
        return hidden, outputs

    def _check_input(self, features: Sequence[float]) -> list[float]:
        if len(features) != self.input_size:
            raise ValueError(
                f"Expected {self.input_size} features, got {len(features)}"
            )
        return [float(x) for x in features]

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def train(
        self,
        examples: Sequence[TrainingExample],
        iterations: int = 300,
        error_threshold: float = 0.01,
        timeout: Optional[float] = None,
    ) -> TrainingStats:
        """Fit the network to labeled feature vectors.

        Training stops at whichever comes first: ``iterations`` passes over
        the data, a mean squared error below ``error_threshold``, or
        ``timeout`` seconds of wall-clock time.

        Raises:
            ValueError: If an example has the wrong number of features.
        """
        samples = [
            (self._check_input(ex.features), self._targets(ex.label)) for ex in examples
        ]
        if not samples:
            return TrainingStats(iterations=0, error=0.0)

        deadline = time.monotonic() + timeout if timeout is not None else None
        error = math.inf
        done = 0
        timed_out = False
        while done < iterations and error > error_threshold:
            if deadline is not None and time.monotonic() > deadline:
                timed_out = True
                break
            total = 0.0
            for inputs, targets in samples:
                total += self._train_sample(inputs, targets)
            error = total / len(samples)
            done += 1

        self.is_trained = True
        return TrainingStats(iterations=done, error=error, timed_out=timed_out)

    @staticmethod
    def _targets(label: Category) -> list[float]:
        return [TARGET_HIGH if c == label else TARGET_LOW for c in CATEGORIES]

    def _train_sample(self, inputs: list[float], targets: list[float]) -> float:
        hidden, outputs = self._forward(inputs)

        out_errors = [t - o for t, o in zip(targets, outputs)]
        out_deltas = [e * o * (1 - o) for e, o in zip(out_errors, outputs)]

        hidden_deltas = []
        for j, h in enumerate(hidden):
            err = sum(out_deltas[k] * self._w_output[k][j] for k in range(self.output_size))
            hidden_deltas.append(err * h * (1 - h))

        lr, mom = self.learning_rate, self.momentum
        for k, delta in enumerate(out_deltas):
            weights, changes = self._w_output[k], self._dw_output[k]
            for j, h in enumerate(hidden):
                change = lr * delta * h + mom * changes[j]
                changes[j] = change
                weights[j] += change
            self._b_output[k] += lr * delta

        for j, delta in enumerate(hidden_deltas):
            weights, changes = self._w_hidden[j], self._dw_hidden[j]
            for i, x in enumerate(inputs):
                change = lr * delta * x + mom * changes[i]
                changes[i] = change
                weights[i] += change
            self._b_hidden[j] += lr * delta

        return sum(e * e for e in out_errors) / len(out_errors)
