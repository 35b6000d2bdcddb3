"""
Intent classification: normalization and exact-match rules.
"""

import pytest

from outreach.domain.classifier import Intent, IntentClassifier, normalize


class TestNormalize:

    @pytest.mark.parametrize("raw", ["SÍ", "si", "Sí ", "  sI\n"])
    def test_case_and_accent_insensitive(self, raw):
        assert normalize(raw) == "si"

    def test_strips_tilde(self):
        assert normalize("No Señora Gracias") == "no senora gracias"

    def test_empty(self):
        assert normalize("") == ""
        assert normalize(None) == ""


class TestIntentClassifier:

    def test_default_affirmative_phrase(self, classifier):
        assert classifier.classify("Sí estoy interesado") is Intent.AFFIRMATIVE

    @pytest.mark.parametrize("raw", ["SÍ", "si", "Sí "])
    def test_accent_variants_classify_identically(self, classifier, raw):
        assert classifier.classify(raw) is Intent.AFFIRMATIVE

    def test_negative(self, classifier):
        assert classifier.classify("No me interesa") is Intent.NEGATIVE
        assert classifier.classify("no señora gracias") is Intent.NEGATIVE

    def test_no_partial_matching(self, classifier):
        assert classifier.classify("si claro, cuéntame") is Intent.UNRECOGNIZED
        assert classifier.classify("nop") is Intent.UNRECOGNIZED

    def test_empty_message_is_unrecognized(self, classifier):
        assert classifier.classify("   ") is Intent.UNRECOGNIZED

    def test_affirmative_wins_when_phrase_in_both_sets(self):
        classifier = IntentClassifier(["tal vez"], ["tal vez", "no"])
        assert classifier.classify("Tal vez") is Intent.AFFIRMATIVE

    def test_phrase_sets_are_normalized(self):
        classifier = IntentClassifier(["MÁS INFORMACIÓN"], ["NO"])
        assert "mas informacion" in classifier.affirmative_phrases
        assert classifier.classify("mas informacion") is Intent.AFFIRMATIVE
