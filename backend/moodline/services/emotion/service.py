"""Chat turn orchestration: validate → classify → normalize → dispatch → reply.

One ``ChatSession`` per conversation. Submissions are serialized by a lock so
a conversation never has two classification calls outstanding; a second
``submit`` waits for the first instead of racing it, which keeps emotion tags
in message order.
"""

from __future__ import annotations

import asyncio
import logging
import random
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional

import httpx

from moodline.core.auth import AuthContext
from moodline.core.config import Settings, get_settings

from .client import ClassificationClient
from .contracts import (
    ChatTurnOutcome,
    ClassificationFailure,
    Decision,
    EmotionResult,
    ErrorKind,
    NormalizationFailure,
    Rejected,
)
from .dispatcher import Dispatcher, degrade
from .history import EmotionStore
from .normalizer import normalize
from .providers import BaseClassifier, get_classifier
from .recommendations import RecommendationCatalog
from .responses import GREETING, RandomSource, apology_for, select_response
from .validator import validate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatMessage:
    role: str  # user | bot
    content: str
    emotion: Optional[EmotionResult] = None
    error: Optional[ErrorKind] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ChatSession:
    def __init__(
        self,
        client: ClassificationClient,
        dispatcher: Dispatcher,
        *,
        auth: Optional[AuthContext] = None,
        rng: RandomSource | None = None,
        max_input_chars: int = 3000,
    ) -> None:
        self.client = client
        self.dispatcher = dispatcher
        self.auth = auth
        self._rng = rng or random.Random()
        self._max_input_chars = max_input_chars
        self._lock = asyncio.Lock()
        self.messages: list[ChatMessage] = [ChatMessage(role="bot", content=GREETING)]

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def submit(self, text: str) -> ChatTurnOutcome:
        verdict = validate(text, max_chars=self._max_input_chars)
        if isinstance(verdict, Rejected):
            # Blocked before any network call; nothing enters the transcript.
            return ChatTurnOutcome(
                user_message=(text or "").strip(),
                bot_message=apology_for(verdict.reason),
                decision=degrade(verdict).kind,
                error=verdict.reason,
            )

        async with self._lock:
            user_message = ChatMessage(role="user", content=verdict.text)
            self.messages.append(user_message)

            try:
                raw = await self.client.classify(verdict, self.auth)
            except Exception:
                logger.exception("Classification via %s raised", self.client.backend.name)
                return self._degraded(user_message, ErrorKind.SERVER_ERROR)
            if isinstance(raw, ClassificationFailure):
                return self._degraded(user_message, raw.kind, raw.retry_after_seconds)

            result = normalize(raw)
            if isinstance(result, NormalizationFailure):
                logger.warning("Classifier payload rejected: %s (%s)", result.kind.value, result.detail)
                return self._degraded(user_message, result.kind)

            decision = self.dispatcher.dispatch(result, context=verdict.text, auth=self.auth)
            reply = select_response(result.emotion, self._rng)

            self._annotate(user_message, emotion=result)
            self.messages.append(ChatMessage(role="bot", content=reply))

            return ChatTurnOutcome(
                user_message=verdict.text,
                bot_message=reply,
                decision=decision.kind,
                emotion=result,
                recommendations_triggered=decision.recommend and self.dispatcher.enable_recommendations,
            )

    def _annotate(self, message: ChatMessage, **changes) -> None:
        position = self.messages.index(message)
        self.messages[position] = replace(message, **changes)

    def _degraded(
        self,
        user_message: ChatMessage,
        kind: ErrorKind,
        retry_after_seconds: Optional[int] = None,
    ) -> ChatTurnOutcome:
        reply = apology_for(kind)
        self._annotate(user_message, error=kind)
        self.messages.append(ChatMessage(role="bot", content=reply))
        return ChatTurnOutcome(
            user_message=user_message.content,
            bot_message=reply,
            decision=Decision.DEGRADED,
            error=kind,
            retry_after_seconds=retry_after_seconds,
        )


def build_dispatcher(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Dispatcher:
    settings = settings or get_settings()
    store = EmotionStore(
        settings.api_url,
        timeout_seconds=settings.collaborator_timeout_seconds,
        transport=transport,
    )
    catalog = RecommendationCatalog(
        settings.api_url,
        timeout_seconds=settings.collaborator_timeout_seconds,
        transport=transport,
    )
    return Dispatcher(
        store,
        catalog,
        threshold=settings.recommendation_confidence_threshold,
        recommendation_types=settings.recommendation_types,
        enable_recommendations=settings.enable_recommendations,
    )


def build_session(
    auth: Optional[AuthContext],
    *,
    settings: Settings | None = None,
    classifier: BaseClassifier | None = None,
    dispatcher: Dispatcher | None = None,
    rng: RandomSource | None = None,
) -> ChatSession:
    """Wire a session from settings; pass shared ``classifier``/``dispatcher`` to reuse them."""
    settings = settings or get_settings()
    client = ClassificationClient(
        classifier or get_classifier(settings=settings),
        timeout_seconds=settings.classify_timeout_seconds,
    )
    return ChatSession(
        client,
        dispatcher or build_dispatcher(settings),
        auth=auth,
        rng=rng,
        max_input_chars=settings.max_input_chars,
    )


class SessionRegistry:
    """One ``ChatSession`` per bearer token, sharing a classifier and dispatcher.

    The least recently used session is evicted once ``max_sessions`` is
    exceeded.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        classifier: BaseClassifier | None = None,
        dispatcher: Dispatcher | None = None,
        max_sessions: int = 1024,
    ) -> None:
        self.settings = settings or get_settings()
        self.classifier = classifier or get_classifier(settings=self.settings)
        self.dispatcher = dispatcher or build_dispatcher(self.settings)
        self._max_sessions = max(1, max_sessions)
        self._sessions: OrderedDict[str, ChatSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def peek(self, auth: AuthContext) -> Optional[ChatSession]:
        """Return the existing session for *auth* without creating one or touching LRU order."""
        return self._sessions.get(auth.token)

    def get(self, auth: AuthContext) -> ChatSession:
        session = self._sessions.get(auth.token)
        if session is not None:
            self._sessions.move_to_end(auth.token)
            return session
        session = build_session(
            auth,
            settings=self.settings,
            classifier=self.classifier,
            dispatcher=self.dispatcher,
        )
        self._sessions[auth.token] = session
        while len(self._sessions) > self._max_sessions:
            self._sessions.popitem(last=False)
        return session

    async def close(self) -> None:
        await self.dispatcher.drain()
        self._sessions.clear()
