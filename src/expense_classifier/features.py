"""Numeric feature extraction for the neural classifier.

Maps an expense description onto a fixed 7-dimensional vector in ``[0, 1]``:

1. length signal (``len / 100``)
2. digit presence
3. word count (``words / 10``)
4. noun count (``nouns / 5``)
5. verb count (``verbs / 5``)
6. adjective count (``adjectives / 5``)
7. transportation term presence

Part-of-speech counts come from a pluggable tagger. The default tagger wraps
NLTK's averaged perceptron model and fetches its resource on first use.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Optional, Protocol

import nltk

logger = logging.getLogger(__name__)

FEATURE_SIZE = 7

TRANSPORT_TERMS: tuple[str, ...] = ("jeep", "bus", "taxi", "fare", "gas", "transport")

_DIGIT_RE = re.compile(r"\d")

# Penn Treebank tag prefixes
_NOUN_PREFIX = "NN"
_VERB_PREFIX = "VB"
_ADJECTIVE_PREFIX = "JJ"


class PartOfSpeechTagger(Protocol):
    """Anything that assigns Penn Treebank tags to a token list."""

    def tag(self, tokens: list[str]) -> list[tuple[str, str]]:
        ...


class NltkTagger:
    """Part-of-speech tagger backed by ``nltk.pos_tag``.

    Args:
        resource: NLTK data package holding the tagger model.
        download: Fetch the resource when it is missing locally.
    """

    def __init__(
        self,
        resource: str = "averaged_perceptron_tagger_eng",
        download: bool = True,
    ) -> None:
        self.resource = resource
        self.download = download
        self._ready = False
        self._lock = threading.Lock()

    def tag(self, tokens: list[str]) -> list[tuple[str, str]]:
        if not tokens:
            return []
        self._ensure_resource()
        return nltk.pos_tag(tokens)

    def _ensure_resource(self) -> None:
        if self._ready:
            return
        with self._lock:
            if self._ready:
                return
            path = f"taggers/{self.resource}"
            try:
                nltk.data.find(path)
            except LookupError:
                if not self.download:
                    raise
                logger.info("Downloading NLTK resource %s", self.resource)
                if not nltk.download(self.resource, quiet=True):
                    raise LookupError(
                        f"NLTK resource {self.resource!r} is missing and could not be downloaded"
                    )
                nltk.data.find(path)
            self._ready = True


class FeatureExtractor:
    """Convert normalized text into the neural network's input vector.

    Args:
        tagger: Part-of-speech tagger; defaults to :class:`NltkTagger`.
    """

    def __init__(self, tagger: Optional[PartOfSpeechTagger] = None) -> None:
        self.tagger: PartOfSpeechTagger = tagger or NltkTagger()

    def extract(self, text: str) -> list[float]:
        """Return the 7 feature values for ``text``."""
        words = text.split()
        nouns, verbs, adjectives = self._count_parts_of_speech(words)

        return [
            min(len(text) / 100, 1.0),
            1.0 if _DIGIT_RE.search(text) else 0.0,
            min(len(words) / 10, 1.0),
            min(nouns / 5, 1.0),
            min(verbs / 5, 1.0),
            min(adjectives / 5, 1.0),
            # Substring test: "business" sets this flag although the rules reject it.
            1.0 if any(term in text for term in TRANSPORT_TERMS) else 0.0,
        ]

    def _count_parts_of_speech(self, words: list[str]) -> tuple[int, int, int]:
        nouns = verbs = adjectives = 0
        for _, tag in self.tagger.tag(words):
            if tag.startswith(_NOUN_PREFIX):
                nouns += 1
            elif tag.startswith(_VERB_PREFIX):
                verbs += 1
            elif tag.startswith(_ADJECTIVE_PREFIX):
                adjectives += 1
        return nouns, verbs, adjectives
