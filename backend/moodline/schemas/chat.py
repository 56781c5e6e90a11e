from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from moodline.services.emotion.contracts import ChatTurnOutcome, EmotionResult


class ChatSubmitRequest(BaseModel):
    # Length and blank checks belong to the validator so they map onto the
    # Rejected decision instead of a 422.
    text: str = ""


class ScoreEntryOut(BaseModel):
    label: str
    score: float


class EmotionResultOut(BaseModel):
    emotion: str
    confidence: float
    all_scores: List[ScoreEntryOut] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: EmotionResult) -> "EmotionResultOut":
        return cls(
            emotion=result.emotion.value,
            confidence=result.confidence,
            all_scores=[ScoreEntryOut(label=s.label, score=s.score) for s in result.all_scores],
        )


class ChatTurnOut(BaseModel):
    user_message: str
    bot_message: str
    decision: str
    emotion: Optional[EmotionResultOut] = None
    recommendations_triggered: bool = False
    error: Optional[str] = None
    requires_reauth: bool = False
    retry_after_seconds: Optional[int] = None

    @classmethod
    def from_outcome(cls, outcome: ChatTurnOutcome) -> "ChatTurnOut":
        return cls(
            user_message=outcome.user_message,
            bot_message=outcome.bot_message,
            decision=outcome.decision.value,
            emotion=EmotionResultOut.from_result(outcome.emotion) if outcome.emotion else None,
            recommendations_triggered=outcome.recommendations_triggered,
            error=outcome.error.value if outcome.error else None,
            requires_reauth=outcome.requires_reauth,
            retry_after_seconds=outcome.retry_after_seconds,
        )


class EmotionSummaryOut(BaseModel):
    emotion: str
    count: int
    percentage: int


class EmotionSummaryResponse(BaseModel):
    total: int
    dominant_emotion: Optional[str] = None
    items: List[EmotionSummaryOut]


class TranscriptMessageOut(BaseModel):
    id: str
    role: str
    content: str
    timestamp: datetime
    emotion: Optional[EmotionResultOut] = None
    error: Optional[str] = None


class RecommendationOut(BaseModel):
    id: str
    type: str
    title: str
    emotion: str
    description: Optional[str] = None
    url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
