"""Stage-by-stage scoring of the prediction cascade.

Every labeled sample goes through ``predict_detailed``; the outcome is booked
against the stage that decided it (``PredictionResult.source``) and against
the expected category. A stage that decides often but is often wrong, such as
an overeager keyword list, shows up directly in the per-stage rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Union

from .models import Category

if TYPE_CHECKING:
    from .classifier import ExpenseClassifier

logger = logging.getLogger(__name__)


@dataclass
class StageTally:
    """How many predictions a group received and how many were right."""

    decided: int = 0
    correct: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.decided if self.decided else 0.0

    def to_dict(self) -> dict:
        return {
            "decided": self.decided,
            "correct": self.correct,
            "accuracy": round(self.accuracy, 4),
        }


@dataclass
class Misclassification:
    text: str
    expected: Category
    predicted: Category
    source: str

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "expected": self.expected.value,
            "predicted": self.predicted.value,
            "source": self.source,
        }


@dataclass
class CascadeReport:
    """Outcome of running labeled expenses through the cascade.

    Attributes:
        stages: Tally per deciding stage, in cascade order.
        categories: Tally per expected category; its accuracy is the recall.
        misclassified: Every wrong prediction with the stage that made it.
    """

    stages: dict[str, StageTally] = field(default_factory=dict)
    categories: dict[Category, StageTally] = field(default_factory=dict)
    misclassified: list[Misclassification] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(t.decided for t in self.stages.values())

    @property
    def correct(self) -> int:
        return sum(t.correct for t in self.stages.values())

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0

    def coverage(self, stage: str) -> float:
        """Share of all samples decided by ``stage``."""
        tally = self.stages.get(stage)
        return tally.decided / self.total if tally and self.total else 0.0

    def record(self, text: str, expected: Category, predicted: Category, source: str) -> None:
        hit = predicted == expected
        for tally in (
            self.stages.setdefault(source, StageTally()),
            self.categories.setdefault(expected, StageTally()),
        ):
            tally.decided += 1
            tally.correct += int(hit)
        if not hit:
            self.misclassified.append(Misclassification(text, expected, predicted, source))

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "correct": self.correct,
            "accuracy": round(self.accuracy, 4),
            "stages": {
                name: {**tally.to_dict(), "coverage": round(self.coverage(name), 4)}
                for name, tally in self.stages.items()
            },
            "categories": {c.value: t.to_dict() for c, t in self.categories.items()},
            "misclassified": [m.to_dict() for m in self.misclassified],
        }


def evaluate_classifier(
    classifier: "ExpenseClassifier",
    samples: Iterable[tuple[str, Union[Category, str]]],
) -> CascadeReport:
    """Score ``(text, expected_category)`` pairs; unknown categories are skipped."""
    report = CascadeReport()
    # Fix the row order to the cascade order; stages that never decide are dropped below.
    for name in classifier.strategies:
        report.stages[name] = StageTally()

    for text, expected in samples:
        try:
            label = Category.parse(expected)
        except ValueError:
            logger.warning("Skipping %r with unknown category %r", text, expected)
            continue
        result = classifier.predict_detailed(text)
        report.record(text, label, result.category, result.source)

    report.stages = {name: t for name, t in report.stages.items() if t.decided}
    return report
