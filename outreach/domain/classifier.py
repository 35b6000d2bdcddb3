"""
Intent Classifier - Exact-Match Reply Classification
=====================================================

ARCHITECTURAL DECISION:
- Replies are matched by exact membership against configured phrase sets
- No partial or fuzzy matching: "si claro" is NOT affirmative unless listed
- Returns ONLY: AFFIRMATIVE, NEGATIVE or UNRECOGNIZED

Normalization makes matching case- and accent-insensitive, so the phrase
sets are normalized with the same pipeline when the classifier is built.
"""

import logging
import unicodedata
from enum import Enum
from typing import Iterable

logger = logging.getLogger(__name__)


class Intent(Enum):
    """Classification result of inbound free text."""
    AFFIRMATIVE = "affirmative"
    NEGATIVE = "negative"
    UNRECOGNIZED = "unrecognized"


def normalize(text: str) -> str:
    """
    Lowercase, strip diacritics and trim.

    "Sí " -> "si", "SEÑORA" -> "senora"
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.strip()


class IntentClassifier:
    """
    Classifies inbound replies against affirmative/negative phrase sets.

    USAGE:
        classifier = IntentClassifier(["si", "interesado"], ["no"])
        classifier.classify("Sí")   # Intent.AFFIRMATIVE
    """

    def __init__(self, affirmative: Iterable[str], negative: Iterable[str]):
        self._affirmative = frozenset(normalize(p) for p in affirmative if normalize(p))
        self._negative = frozenset(normalize(p) for p in negative if normalize(p))

        overlap = self._affirmative & self._negative
        if overlap:
            logger.warning(f"Phrases in both intent sets resolve as affirmative: {sorted(overlap)}")

    @property
    def affirmative_phrases(self) -> frozenset:
        return self._affirmative

    @property
    def negative_phrases(self) -> frozenset:
        return self._negative

    def classify(self, raw_text: str) -> Intent:
        """Classify a raw message body. Affirmative wins ties."""
        text = normalize(raw_text)

        if text in self._affirmative:
            return Intent.AFFIRMATIVE
        if text in self._negative:
            return Intent.NEGATIVE

        logger.debug(f"Unrecognized reply: {text[:50]!r}")
        return Intent.UNRECOGNIZED
