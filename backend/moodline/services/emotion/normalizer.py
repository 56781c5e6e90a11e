"""Strict validation of classifier payloads.

Expected shape::

    {"emotion": str, "confidence": number, "scores": [{"label": str, "score": number}, ...]}

Anything else is a ``NormalizationFailure``; alternate field names are not
guessed. No I/O happens here.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Union

from .contracts import (
    EmotionLabel,
    EmotionResult,
    ErrorKind,
    NormalizationFailure,
    RawClassification,
    ScoreEntry,
    VALID_LABELS,
    coerce_label,
)

logger = logging.getLogger(__name__)


def _is_unit_score(value: Any) -> bool:
    # bool is an int subclass; true/false is never a score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and 0.0 <= value <= 1.0


def _canonical_label(raw: str, *, where: str) -> EmotionLabel:
    label = coerce_label(raw)
    if label is EmotionLabel.NEUTRAL and raw.strip().lower() not in VALID_LABELS:
        logger.warning("Unrecognized %s label %r coerced to neutral", where, raw)
    return label


def _parse_scores(raw_scores: Any) -> list[tuple[str, float]] | NormalizationFailure:
    """Validate the score list; labels come back case-folded but not yet canonical."""
    if not isinstance(raw_scores, (list, tuple)):
        return NormalizationFailure(ErrorKind.MALFORMED_SCORES, "scores is not a list")

    parsed: list[tuple[str, float]] = []
    for index, item in enumerate(raw_scores):
        if not isinstance(item, dict):
            return NormalizationFailure(ErrorKind.MALFORMED_SCORES, f"scores[{index}] is not an object")
        label = item.get("label")
        if not isinstance(label, str) or not label.strip():
            return NormalizationFailure(ErrorKind.MALFORMED_SCORES, f"scores[{index}].label is invalid")
        score = item.get("score")
        if not _is_unit_score(score):
            return NormalizationFailure(ErrorKind.MALFORMED_SCORES, f"scores[{index}].score is invalid")
        parsed.append((label.strip().lower(), float(score)))
    return parsed


def _collapse(parsed: list[tuple[str, float]], emotion: EmotionLabel, confidence: float) -> tuple[ScoreEntry, ...]:
    # Unknown labels all fold into neutral; keep one entry per label and pin
    # the verdict's entry to the reported confidence.
    merged: dict[str, float] = {}
    for folded, score in parsed:
        label = _canonical_label(folded, where="score").value
        merged[label] = max(score, merged.get(label, 0.0))
    merged[emotion.value] = confidence
    return tuple(ScoreEntry(label=label, score=score) for label, score in merged.items())


def normalize(raw: RawClassification | Any) -> Union[EmotionResult, NormalizationFailure]:
    """Validate a raw classifier payload and canonicalize its labels."""
    payload = raw.payload if isinstance(raw, RawClassification) else raw

    if not isinstance(payload, dict):
        return NormalizationFailure(ErrorKind.MISSING_EMOTION_FIELD, "payload is not an object")

    raw_emotion = payload.get("emotion")
    if not isinstance(raw_emotion, str) or not raw_emotion.strip():
        return NormalizationFailure(ErrorKind.MISSING_EMOTION_FIELD, "emotion is missing")

    confidence = payload.get("confidence")
    if not _is_unit_score(confidence):
        return NormalizationFailure(ErrorKind.MISSING_CONFIDENCE, "confidence is missing or out of range")
    confidence = float(confidence)

    parsed = _parse_scores(payload.get("scores"))
    if isinstance(parsed, NormalizationFailure):
        return parsed

    folded_emotion = raw_emotion.strip().lower()
    emotion = _canonical_label(raw_emotion, where="emotion")

    # The verdict must appear in its own distribution with the same score.
    verdict_scores = [score for folded, score in parsed if folded == folded_emotion]
    if not verdict_scores:
        if folded_emotion in VALID_LABELS:
            return NormalizationFailure(
                ErrorKind.MALFORMED_SCORES,
                f"scores do not contain the {emotion.value!r} verdict",
            )
        logger.warning("Unrecognized verdict %r has no score entry; using confidence", raw_emotion)
    elif not any(math.isclose(score, confidence, rel_tol=1e-6, abs_tol=1e-6) for score in verdict_scores):
        return NormalizationFailure(
            ErrorKind.MALFORMED_SCORES,
            f"confidence {confidence} disagrees with the {emotion.value!r} score",
        )

    return EmotionResult(emotion=emotion, confidence=confidence, all_scores=_collapse(parsed, emotion, confidence))
