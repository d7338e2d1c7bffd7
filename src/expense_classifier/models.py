"""Data models for expense classification."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Category(str, Enum):
    """Spending categories an expense description can be assigned to."""

    FOOD = "Food"
    BILL = "Bill"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    HEALTHCARE = "Healthcare"
    SHOPPING = "Shopping"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: "Category | str") -> "Category":
        """Resolve a member or a case-insensitive category name.

        Raises:
            ValueError: If ``value`` does not name a known category.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if member.value.lower() == wanted:
                    return member
        raise ValueError(
            f"Unknown category: {value!r}. Known: {[c.value for c in cls]}"
        )


# Fixed output ordering shared by both statistical models.
CATEGORIES: tuple[Category, ...] = tuple(Category)


def normalize_text(text: str) -> str:
    """Lower-case and trim an expense description."""
    return text.lower().strip()


@dataclass(frozen=True)
class TrainingExample:
    """A feature vector paired with the category it was taught as."""

    features: tuple[float, ...]
    label: Category


@dataclass
class CorrectionEntry:
    """A user correction held in memory until it is flushed."""

    text: str
    category: Category
    count: int = 1

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "category": self.category.value,
            "count": self.count,
        }


@dataclass
class Classification:
    """One label/score pair from the Bayes model."""

    label: Category
    score: float


@dataclass
class PredictionResult:
    """Outcome of running the decision cascade on one description."""

    category: Category
    confidence: float = 0.0
    source: str = "fallback"
    was_adjusted: bool = False
    adjustment_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "expense_type": self.category.value,
            "confidence": round(self.confidence, 4),
            "source": self.source,
            "was_adjusted": self.was_adjusted,
            "adjustment_reason": self.adjustment_reason,
        }
