"""
training_data.py

Curated examples used to give the classifier a working vocabulary before any
real expenses exist.

``SEED_DATA`` is taught at start-up: for every category a few direct
examples plus the nouns and verbs people use when describing that kind of
spending. ``BACKFILL_EXAMPLES`` tops up under-represented categories after
historical expenses are loaded, so one busy category does not dominate the
priors. Extend either list to teach local merchants and slang.
"""

from __future__ import annotations

from .models import Category

SEED_DATA: dict[Category, dict[str, tuple[str, ...]]] = {
    Category.FOOD: {
        "examples": ("burger", "pizza", "pasta"),
        "nouns": ("meal", "food", "dinner"),
        "verbs": ("eat", "dine"),
    },
    Category.BILL: {
        "examples": ("electric bill", "water payment"),
        "nouns": ("utility", "rent"),
        "verbs": ("pay", "owe"),
    },
    Category.TRANSPORTATION: {
        "examples": ("jeep", "jeepney", "bus fare", "gas", "train ticket", "public transport"),
        "nouns": ("transport", "fare", "vehicle", "commute"),
        "verbs": ("ride", "travel", "commute"),
    },
    Category.ENTERTAINMENT: {
        "examples": ("movie", "concert", "game"),
        "nouns": ("fun", "show"),
        "verbs": ("watch", "play"),
    },
    Category.HEALTHCARE: {
        "examples": ("doctor", "hospital", "medicine"),
        "nouns": ("health", "clinic"),
        "verbs": ("treat", "heal"),
    },
    Category.SHOPPING: {
        "examples": ("clothes", "shoes", "mall"),
        "nouns": ("purchase", "item"),
        "verbs": ("buy", "shop"),
    },
    Category.OTHER: {
        "examples": ("miscellaneous", "unknown"),
        "nouns": ("other",),
        "verbs": (),
    },
}

BACKFILL_EXAMPLES: dict[Category, tuple[str, ...]] = {
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
        "gasoline", "gas", "petrol", "diesel", "jeep", "jeepney",
        "bus", "mrt", "grab", "angkas", "taxi", "lrt", "tricycle",
        "parking", "car", "vehicle", "transport", "fare", "commute",
        "fuel", "oil change", "toll", "public transport", "metro",
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
    Category.OTHER: ("miscellaneous", "unknown", "uncategorized"),
}

DEFAULT_BACKFILL_TARGET = 10


def iter_seed_examples():
    """Yield ``(text, category)`` for every seeded example, noun and verb."""
    for category, groups in SEED_DATA.items():
        for key in ("examples", "nouns", "verbs"):
            for text in groups[key]:
                yield text, category
