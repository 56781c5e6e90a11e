"""Mock backend — deterministic keyword scoring for tests and offline runs."""

from __future__ import annotations

import time
from typing import Optional

from moodline.core.auth import AuthContext

from ..contracts import RawClassification
from .base import BaseClassifier, ClassifyOutcome

_KEYWORDS: dict[str, tuple[str, ...]] = {
    "joy": (" happy ", " excited ", " wonderful ", " amazing ", " great "),
    "love": (" love ", " adore ", " grateful ", " caring "),
    "sadness": (" sad ", " down ", " depressed ", " upset ", " lonely "),
    "anger": (" angry ", " mad ", " furious ", " annoyed ", " hate "),
    "fear": (" scared ", " afraid ", " worried ", " nervous ", " anxious "),
    "surprise": (" wow ", " unexpected ", " shocked ", " surprised "),
}


def keyword_scores(text: str) -> list[dict[str, float]]:
    """Score every label by keyword hits; no hits means a neutral verdict."""
    padded = f" {text.lower()} "
    hits = {label: sum(1.0 for kw in kws if kw in padded) for label, kws in _KEYWORDS.items()}
    hits["neutral"] = 0.0 if any(hits.values()) else 1.0
    total = sum(hits.values())
    scores = [{"label": label, "score": round(count / total, 4)} for label, count in hits.items()]
    scores.sort(key=lambda item: item["score"], reverse=True)
    return scores


class MockClassifier(BaseClassifier):
    name = "mock"

    async def classify(
        self,
        text: str,
        auth: Optional[AuthContext],
        *,
        timeout_seconds: float = 30.0,
    ) -> ClassifyOutcome:
        t0 = time.monotonic()
        scores = keyword_scores(text)
        top = scores[0]
        payload = {"emotion": top["label"], "confidence": top["score"], "scores": scores}
        elapsed = (time.monotonic() - t0) * 1000
        return RawClassification(payload=payload, backend=self.name, latency_ms=round(elapsed, 2))
