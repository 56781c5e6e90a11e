"""Confidence gate and dispatcher.

Decides what happens with a classification result:
- every successful result is persisted (fire-and-forget, failures only logged)
- ``confidence > threshold`` additionally triggers a recommendation lookup
- any upstream failure degrades: nothing is persisted or recommended

The threshold comparison is strict: exactly 0.70 does not recommend.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine, Iterable, Optional

from moodline.core.auth import AuthContext

from .contracts import (
    Decision,
    DispatchDecision,
    EmotionEntry,
    EmotionLabel,
    EmotionResult,
    PipelineFailure,
    Recommendation,
    Rejected,
)
from .history import EmotionStore
from .recommendations import RecommendationCatalog

logger = logging.getLogger(__name__)

RECOMMENDATION_THRESHOLD = 0.7

RecommendationsCallback = Callable[[EmotionLabel, list[Recommendation]], Awaitable[None]]


def decide(result: EmotionResult, *, threshold: float = RECOMMENDATION_THRESHOLD) -> DispatchDecision:
    if result.confidence > threshold:
        return DispatchDecision(Decision.PERSIST_AND_RECOMMEND, emotion=result.emotion)
    return DispatchDecision(Decision.PERSIST, emotion=result.emotion)


def degrade(failure: PipelineFailure) -> DispatchDecision:
    if isinstance(failure, Rejected):
        return DispatchDecision(Decision.REJECTED, error=failure.reason)
    return DispatchDecision(Decision.DEGRADED, error=failure.kind)


class Dispatcher:
    def __init__(
        self,
        store: EmotionStore | None,
        catalog: RecommendationCatalog | None,
        *,
        threshold: float = RECOMMENDATION_THRESHOLD,
        recommendation_types: Iterable[str] = (),
        enable_recommendations: bool = True,
        on_recommendations: RecommendationsCallback | None = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self.threshold = threshold
        self.recommendation_types = list(recommendation_types)
        self.enable_recommendations = enable_recommendations
        self._on_recommendations = on_recommendations
        self._tasks: set[asyncio.Task] = set()

    @property
    def store(self) -> EmotionStore | None:
        return self._store

    @property
    def catalog(self) -> RecommendationCatalog | None:
        return self._catalog

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(
        self,
        result: EmotionResult,
        *,
        context: str,
        auth: Optional[AuthContext] = None,
    ) -> DispatchDecision:
        """Compute the decision and schedule its side effects without awaiting them."""
        decision = decide(result, threshold=self.threshold)

        entry = EmotionEntry.from_result(result, context=context, user_id=auth.user_id if auth else None)
        if self._store is not None:
            self._spawn(self._persist(entry, auth), name=f"persist-{entry.id}")

        if decision.recommend and self.enable_recommendations and self._catalog is not None:
            self._spawn(self._recommend(result.emotion, auth), name=f"recommend-{result.emotion.value}")

        logger.info(
            "Dispatch: emotion=%s confidence=%.3f decision=%s",
            result.emotion.value,
            result.confidence,
            decision.kind.value,
        )
        return decision

    async def drain(self) -> None:
        """Wait for every scheduled side effect (used on shutdown and in tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> None:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _persist(self, entry: EmotionEntry, auth: Optional[AuthContext]) -> None:
        try:
            ok = await self._store.append_emotion_entry(entry, auth)
        except Exception:
            logger.warning("Persisting emotion entry %s raised", entry.id, exc_info=True)
            return
        if not ok:
            logger.warning(
                "Emotion entry %s (%s) was not stored; dropped without retry",
                entry.id,
                entry.emotion.value,
            )

    async def _recommend(self, emotion: EmotionLabel, auth: Optional[AuthContext]) -> None:
        try:
            items = await self._catalog.get_recommendations(emotion, self.recommendation_types, auth)
            logger.info("Recommendations for %s: %d item(s)", emotion.value, len(items))
            if self._on_recommendations is not None:
                await self._on_recommendations(emotion, items)
        except Exception:
            logger.warning("Recommendation lookup for %s failed", emotion.value, exc_info=True)
