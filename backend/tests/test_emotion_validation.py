"""Tests for input validation and payload normalization.

Covers:
- Empty / whitespace input rejected before any network call
- 3000 characters accepted, 3001 rejected
- Label canonicalization (case-insensitive, unknown -> neutral)
- Missing emotion / confidence and malformed score lists
"""

import math
import unittest

from moodline.services.emotion.contracts import (
    EmotionLabel,
    EmotionResult,
    ErrorKind,
    NormalizationFailure,
    RawClassification,
    Rejected,
    ValidText,
)
from moodline.services.emotion.normalizer import normalize
from moodline.services.emotion.validator import MAX_INPUT_CHARS, validate


class ValidatorTests(unittest.TestCase):
    def test_empty_and_whitespace_rejected(self):
        for text in ("", "   ", "\n\t ", None):
            verdict = validate(text)
            self.assertIsInstance(verdict, Rejected)
            self.assertEqual(verdict.reason, ErrorKind.EMPTY_INPUT)

    def test_length_boundary(self):
        self.assertEqual(MAX_INPUT_CHARS, 3000)
        ok = validate("a" * 3000)
        self.assertIsInstance(ok, ValidText)
        self.assertEqual(len(ok.text), 3000)

        too_long = validate("a" * 3001)
        self.assertIsInstance(too_long, Rejected)
        self.assertEqual(too_long.reason, ErrorKind.TOO_LONG)

    def test_length_counts_trimmed_text(self):
        verdict = validate("  " + "b" * 3000 + "  ")
        self.assertIsInstance(verdict, ValidText)
        self.assertEqual(verdict.text, "b" * 3000)

    def test_custom_limit(self):
        self.assertIsInstance(validate("hello", max_chars=4), Rejected)
        self.assertIsInstance(validate("hell", max_chars=4), ValidText)


class NormalizerTests(unittest.TestCase):
    def test_canonicalizes_labels(self):
        raw = RawClassification(
            payload={
                "emotion": "Joy",
                "confidence": 0.82,
                "scores": [{"label": "JOY", "score": 0.82}, {"label": "Sadness", "score": 0.1}],
            }
        )
        result = normalize(raw)
        self.assertIsInstance(result, EmotionResult)
        self.assertEqual(result.emotion, EmotionLabel.JOY)
        self.assertAlmostEqual(result.confidence, 0.82)
        self.assertEqual([s.label for s in result.all_scores], ["joy", "sadness"])

    def test_unknown_label_becomes_neutral(self):
        result = normalize(
            {
                "emotion": "ecstasy",
                "confidence": 0.6,
                "scores": [{"label": "ecstasy", "score": 0.6}, {"label": "joy", "score": 0.4}],
            }
        )
        self.assertIsInstance(result, EmotionResult)
        self.assertEqual(result.emotion, EmotionLabel.NEUTRAL)
        self.assertEqual(result.all_scores[0].label, "neutral")

    def test_missing_emotion(self):
        for payload in (None, "joy", [], {"confidence": 0.5, "scores": []}, {"emotion": "  "}):
            result = normalize(payload)
            self.assertIsInstance(result, NormalizationFailure)
            self.assertEqual(result.kind, ErrorKind.MISSING_EMOTION_FIELD)

    def test_missing_or_bad_confidence(self):
        for confidence in (None, "0.8", True, 1.5, -0.1, math.nan):
            result = normalize({"emotion": "joy", "confidence": confidence, "scores": []})
            self.assertIsInstance(result, NormalizationFailure, confidence)
            self.assertEqual(result.kind, ErrorKind.MISSING_CONFIDENCE)

    def test_malformed_scores(self):
        cases = [
            None,
            "joy:0.8",
            [["joy", 0.8]],
            [{"label": "joy"}],
            [{"label": "", "score": 0.5}],
            [{"label": "joy", "score": 2}],
            # verdict absent from its own distribution
            [{"label": "anger", "score": 0.8}],
        ]
        for scores in cases:
            result = normalize({"emotion": "joy", "confidence": 0.8, "scores": scores})
            self.assertIsInstance(result, NormalizationFailure, scores)
            self.assertEqual(result.kind, ErrorKind.MALFORMED_SCORES)

    def test_non_json_body_is_missing_emotion(self):
        result = normalize(RawClassification(payload=None))
        self.assertEqual(result.kind, ErrorKind.MISSING_EMOTION_FIELD)

    def test_confidence_must_match_verdict_score(self):
        result = normalize(
            {
                "emotion": "joy",
                "confidence": 0.9,
                "scores": [{"label": "joy", "score": 0.1}, {"label": "anger", "score": 0.9}],
            }
        )
        self.assertIsInstance(result, NormalizationFailure)
        self.assertEqual(result.kind, ErrorKind.MALFORMED_SCORES)

    def test_unknown_verdict_without_own_score_entry(self):
        result = normalize(
            {
                "emotion": "ecstasy",
                "confidence": 0.82,
                "scores": [{"label": "JOY", "score": 0.82}, {"label": "anger", "score": 0.05}],
            }
        )
        self.assertIsInstance(result, EmotionResult)
        self.assertEqual(result.emotion, EmotionLabel.NEUTRAL)
        self.assertEqual(
            [(s.label, s.score) for s in result.all_scores],
            [("joy", 0.82), ("anger", 0.05), ("neutral", 0.82)],
        )

    def test_unknown_score_labels_collapse_into_one_neutral(self):
        result = normalize(
            {
                "emotion": "ecstasy",
                "confidence": 0.5,
                "scores": [
                    {"label": "ecstasy", "score": 0.5},
                    {"label": "neutral", "score": 0.3},
                    {"label": "bliss", "score": 0.2},
                ],
            }
        )
        self.assertIsInstance(result, EmotionResult)
        self.assertEqual([(s.label, s.score) for s in result.all_scores], [("neutral", 0.5)])

    def test_integer_bounds_are_valid_scores(self):
        result = normalize({"emotion": "fear", "confidence": 1, "scores": [{"label": "fear", "score": 1}]})
        self.assertIsInstance(result, EmotionResult)
        self.assertEqual(result.confidence, 1.0)


if __name__ == "__main__":
    unittest.main()
