"""Chat endpoints: submit a message, read the transcript, history summary."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from moodline.core.auth import AuthContext, get_auth_context
from moodline.schemas.chat import (
    ChatSubmitRequest,
    ChatTurnOut,
    EmotionResultOut,
    EmotionSummaryOut,
    EmotionSummaryResponse,
    RecommendationOut,
    TranscriptMessageOut,
)
from moodline.services.emotion.contracts import EmotionLabel, HistoryFilter
from moodline.services.emotion.history import summarize_history
from moodline.services.emotion.responses import GREETING
from moodline.services.emotion.service import ChatMessage, SessionRegistry

router = APIRouter()


def get_registry(request: Request) -> SessionRegistry:
    registry = getattr(request.app.state, "sessions", None)
    if registry is None:
        raise HTTPException(503, "Chat sessions are not initialised")
    return registry


@router.post("/chat/submit", response_model=ChatTurnOut, summary="Classify a chat message and reply")
async def submit_message(
    body: ChatSubmitRequest,
    auth: AuthContext = Depends(get_auth_context),
    registry: SessionRegistry = Depends(get_registry),
):
    session = registry.get(auth)
    outcome = await session.submit(body.text)
    return ChatTurnOut.from_outcome(outcome)


@router.get("/chat/messages", response_model=list[TranscriptMessageOut])
def list_messages(
    auth: AuthContext = Depends(get_auth_context),
    registry: SessionRegistry = Depends(get_registry),
):
    session = registry.peek(auth)
    messages = session.messages if session is not None else [ChatMessage(role="bot", content=GREETING)]
    return [
        TranscriptMessageOut(
            id=message.id,
            role=message.role,
            content=message.content,
            timestamp=message.timestamp,
            emotion=EmotionResultOut.from_result(message.emotion) if message.emotion else None,
            error=message.error.value if message.error else None,
        )
        for message in messages
    ]


@router.get("/emotions/summary", response_model=EmotionSummaryResponse)
async def emotion_summary(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    auth: AuthContext = Depends(get_auth_context),
    registry: SessionRegistry = Depends(get_registry),
):
    store = registry.dispatcher.store
    if store is None:
        raise HTTPException(503, "Emotion history is not configured")
    entries = await store.list_emotion_history(HistoryFilter(start_date, end_date), auth)
    items = summarize_history(entries)
    return EmotionSummaryResponse(
        total=len(entries),
        dominant_emotion=items[0].emotion if items else None,
        items=[EmotionSummaryOut(emotion=i.emotion, count=i.count, percentage=i.percentage) for i in items],
    )


@router.get("/recommendations", response_model=list[RecommendationOut])
async def recommendations(
    emotion: EmotionLabel = Query(...),
    types: Optional[str] = Query(None, description="Comma separated content types"),
    auth: AuthContext = Depends(get_auth_context),
    registry: SessionRegistry = Depends(get_registry),
):
    settings = registry.settings
    catalog = registry.dispatcher.catalog
    if catalog is None:
        raise HTTPException(503, "Recommendations are not configured")
    wanted = [t.strip() for t in types.split(",") if t.strip()] if types else settings.recommendation_types
    items = await catalog.get_recommendations(emotion, wanted, auth)
    return [
        RecommendationOut(
            id=item.id,
            type=item.type,
            title=item.title,
            emotion=item.emotion,
            description=item.description,
            url=item.url,
            tags=list(item.tags),
        )
        for item in items
    ]
