"""Contracts for the emotion classification pipeline.

Every stage returns one of these values; failures are values too
(``Rejected``, ``ClassificationFailure``, ``NormalizationFailure``) so callers
match on ``kind`` instead of catching exceptions.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional, Union


class EmotionLabel(str, Enum):
    JOY = "joy"
    SADNESS = "sadness"
    ANGER = "anger"
    FEAR = "fear"
    LOVE = "love"
    SURPRISE = "surprise"
    NEUTRAL = "neutral"


VALID_LABELS = frozenset(label.value for label in EmotionLabel)


class ErrorKind(str, Enum):
    # Validator
    EMPTY_INPUT = "EmptyInput"
    TOO_LONG = "TooLong"
    # Classification client
    INVALID_INPUT = "InvalidInput"
    TIMEOUT = "Timeout"
    NETWORK_UNAVAILABLE = "NetworkUnavailable"
    UNAUTHORIZED = "Unauthorized"
    RATE_LIMITED = "RateLimited"
    MODEL_WARMING_UP = "ModelWarmingUp"
    SERVER_ERROR = "ServerError"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    # Normalizer
    MISSING_EMOTION_FIELD = "MissingEmotionField"
    MISSING_CONFIDENCE = "MissingConfidence"
    MALFORMED_SCORES = "MalformedScores"

    @property
    def requires_reauth(self) -> bool:
        return self is ErrorKind.UNAUTHORIZED

    @property
    def is_transient(self) -> bool:
        return self in {ErrorKind.MODEL_WARMING_UP, ErrorKind.TIMEOUT}


class Decision(str, Enum):
    PERSIST = "Persist"
    PERSIST_AND_RECOMMEND = "PersistAndRecommend"
    DEGRADED = "Degraded"
    REJECTED = "Rejected"


RECOMMENDATION_TYPES = frozenset({"movie", "book", "music", "activity", "exercise", "resource"})


def coerce_label(raw: str) -> EmotionLabel:
    """Case-fold *raw* and map it onto the closed label set (``neutral`` otherwise)."""
    folded = raw.strip().lower()
    if folded in VALID_LABELS:
        return EmotionLabel(folded)
    return EmotionLabel.NEUTRAL


@dataclass(frozen=True)
class ScoreEntry:
    label: str
    score: float  # 0.0–1.0


@dataclass(frozen=True)
class EmotionResult:
    emotion: EmotionLabel
    confidence: float  # score of ``emotion`` within ``all_scores``
    all_scores: tuple[ScoreEntry, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            "emotion": self.emotion.value,
            "confidence": self.confidence,
            "allScores": [{"label": s.label, "score": s.score} for s in self.all_scores],
        }


@dataclass(frozen=True)
class EmotionEntry:
    """Persisted record of one dispatched classification."""

    id: str
    user_id: Optional[str]
    emotion: EmotionLabel
    intensity: float
    timestamp: datetime
    context: str

    @classmethod
    def from_result(
        cls,
        result: EmotionResult,
        *,
        context: str,
        user_id: Optional[str] = None,
    ) -> "EmotionEntry":
        return cls(
            id=str(uuid.uuid4()),
            user_id=user_id,
            emotion=result.emotion,
            intensity=result.confidence,
            timestamp=datetime.now(timezone.utc),
            context=context,
        )

    def wire_body(self) -> dict[str, Any]:
        return {
            "emotion": self.emotion.value,
            "intensity": self.intensity,
            "context": self.context,
        }


@dataclass(frozen=True)
class ClassificationRequest:
    text: str
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class ValidText:
    text: str


@dataclass(frozen=True)
class Rejected:
    reason: ErrorKind  # EMPTY_INPUT | TOO_LONG

    @property
    def kind(self) -> ErrorKind:
        return self.reason


@dataclass(frozen=True)
class RawClassification:
    """Payload exactly as the backend produced it, before normalization."""

    payload: Any
    backend: str = "remote"
    latency_ms: float = 0.0


@dataclass(frozen=True)
class ClassificationFailure:
    kind: ErrorKind
    detail: str = ""
    status_code: Optional[int] = None
    retry_after_seconds: Optional[int] = None


@dataclass(frozen=True)
class NormalizationFailure:
    kind: ErrorKind
    detail: str = ""


PipelineFailure = Union[Rejected, ClassificationFailure, NormalizationFailure]


@dataclass(frozen=True)
class DispatchDecision:
    kind: Decision
    emotion: Optional[EmotionLabel] = None
    error: Optional[ErrorKind] = None

    @property
    def recommend(self) -> bool:
        return self.kind is Decision.PERSIST_AND_RECOMMEND

    @property
    def persisted(self) -> bool:
        return self.kind in {Decision.PERSIST, Decision.PERSIST_AND_RECOMMEND}


@dataclass(frozen=True)
class ChatTurnOutcome:
    user_message: str
    bot_message: str
    decision: Decision
    emotion: Optional[EmotionResult] = None
    recommendations_triggered: bool = False
    error: Optional[ErrorKind] = None
    retry_after_seconds: Optional[int] = None

    @property
    def requires_reauth(self) -> bool:
        return self.error is not None and self.error.requires_reauth


@dataclass(frozen=True)
class Recommendation:
    id: str
    type: str  # movie | book | music | activity | exercise | resource
    title: str
    emotion: str
    description: Optional[str] = None
    url: Optional[str] = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class HistoryFilter:
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def as_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.start_date:
            params["startDate"] = self.start_date.isoformat()
        if self.end_date:
            params["endDate"] = self.end_date.isoformat()
        return params


@dataclass(frozen=True)
class HistoryEntry:
    """One row of emotion history as returned by the persistence store."""

    emotion: str
    intensity: float
    timestamp: Optional[str] = None
    context: Optional[str] = None
    id: Optional[str] = None
    user_id: Optional[str] = None


@dataclass(frozen=True)
class EmotionSummary:
    emotion: str
    count: int
    percentage: int
