"""Hand-authored keyword rules evaluated ahead of the statistical models.

Rules run in a fixed order:

1. A transportation short-circuit over a handful of short transport words
   that the longer phrase lists would otherwise drown out.
2. Per-category keyword dictionaries, tested in declaration order. The first
   category with a hit wins, so the ordering of ``CATEGORY_KEYWORDS`` is part
   of the behavior.

Multi-word phrases match by substring containment on the whole text. Single
words must appear as a whole token, so ``bus`` never fires on ``business``.
"""

from __future__ import annotations

import re
from typing import Optional

from rapidfuzz.distance import Levenshtein

from .models import Category

TRANSPORT_SHORTCUT: tuple[str, ...] = ("jeep", "bus", "taxi", "transport", "fare", "gas")

CATEGORY_KEYWORDS: dict[Category, tuple[str, ...]] = {
    Category.FOOD: (
        "burger", "burgei", "burgir", "hamburger", "jollibee",
        "pizza", "piza", "pasta", "sandwich", "fries", "milktea",
        "rice", "noodles", "chicken", "mcdo", "kfc",
    ),
    Category.BILL: (
        "electric bill", "water bill", "internet bill", "phone bill",
        "cable bill", "utility bill", "rent", "mortgage", "electricity",
        "water payment", "internet payment",
    ),
    Category.TRANSPORTATION: (
        "gasoline", "gas", "petrol", "diesel", "jeepney fare",
        "bus fare", "mrt fare", "grab", "angkas", "taxi",
        "lrt fare", "tricycle fare", "parking fee", "car maintenance",
    ),
    Category.ENTERTAINMENT: (
        "movie tickets", "netflix", "spotify", "youtube premium",
        "concert tickets", "videoke", "arcade", "theme park",
        "movie", "cinema", "streaming", "game", "video game",
    ),
    Category.HEALTHCARE: (
        "doctor visit", "hospital", "medicine", "vitamins",
        "checkup", "dentist", "vaccine", "medical supplies",
        "pharmacy", "drugstore", "clinic", "xray", "laboratory",
    ),
    Category.SHOPPING: (
        "shoes", "clothes", "shirt", "pants", "dress",
        "gadget", "phone", "laptop", "accessories", "bag",
        "watch", "perfume", "makeup", "groceries", "market",
        "office chair", "desk", "monitor", "keyboard", "mouse",
        "furniture", "stationery", "notebook", "pen", "backpack",
    ),
}

# Known words and the typo variants users actually type for them.
MISSPELLINGS: dict[str, tuple[str, ...]] = {
    "burger": ("burgei", "burgir"),
    "pizza": ("piza", "pisa"),
}

_TOKEN_RE = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")


def tokenize(text: str) -> list[str]:
    """Split normalized text into word tokens, dropping punctuation."""
    return _TOKEN_RE.findall(text.lower())


def _keyword_hit(keyword: str, text: str, tokens: set[str]) -> bool:
    if " " in keyword:
        return keyword in text
    return keyword in tokens


class KeywordRuleEngine:
    """Ordered keyword rules returning a category or ``None``.

    Args:
        transport_shortcut: Words that immediately mean Transportation.
        keywords: Category dictionaries in priority order.
    """

    def __init__(
        self,
        transport_shortcut: tuple[str, ...] = TRANSPORT_SHORTCUT,
        keywords: Optional[dict[Category, tuple[str, ...]]] = None,
    ) -> None:
        self.transport_shortcut = transport_shortcut
        self.keywords = keywords if keywords is not None else CATEGORY_KEYWORDS

    def match(self, text: str) -> Optional[Category]:
        """Return the first category whose rules fire on ``text``."""
        tokens = set(tokenize(text))
        if not tokens:
            return None

        if any(_keyword_hit(k, text, tokens) for k in self.transport_shortcut):
            return Category.TRANSPORTATION

        for category, keywords in self.keywords.items():
            if any(_keyword_hit(k, text, tokens) for k in keywords):
                return category
        return None


# ---------------------------------------------------------------------------
# Fuzzy matching (training-data authoring only)
# ---------------------------------------------------------------------------


def similarity(a: str, b: str) -> float:
    """Edit-distance similarity ``1 - distance / max(len(a), len(b))``."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1 - Levenshtein.distance(a, b) / longest


def fuzzy_match(a: str, b: str, threshold: float = 0.7) -> bool:
    """Whether ``a`` and ``b`` are at least ``threshold`` similar."""
    return similarity(a, b) >= threshold


def misspelling_variants(text: str, threshold: float = 0.7) -> list[str]:
    """Return hand-seeded typo variants for known words found in ``text``.

    A token counts as a known word when it fuzzy-matches the base word, so
    ``burgers`` expands the same way ``burger`` does. Variants already
    present in the text are not repeated.
    """
    tokens = tokenize(text)
    variants: list[str] = []
    for base, typos in MISSPELLINGS.items():
        if any(fuzzy_match(token, base, threshold) for token in tokens):
            for typo in typos:
                if typo not in tokens and typo not in variants:
                    variants.append(typo)
    return variants
