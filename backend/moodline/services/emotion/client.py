"""Classification client: one bounded call per validated submission."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from moodline.core.auth import AuthContext

from .contracts import (
    ClassificationFailure,
    ClassificationRequest,
    ErrorKind,
    ValidText,
)
from .providers import BaseClassifier, ClassifyOutcome

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class ClassificationClient:
    """Wraps a backend with the hard timeout and the no-exception guarantee.

    On timeout the pending backend call is cancelled (its httpx request is
    aborted) rather than left to finish in the background.
    """

    def __init__(self, backend: BaseClassifier, *, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.backend = backend
        self.timeout_seconds = timeout_seconds

    async def classify(self, valid: ValidText, auth: Optional[AuthContext]) -> ClassifyOutcome:
        request = ClassificationRequest(text=valid.text)
        try:
            outcome = await asyncio.wait_for(
                self.backend.classify(request.text, auth, timeout_seconds=self.timeout_seconds),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            kind = ErrorKind.MODEL_WARMING_UP if self.backend.is_warming_up() else ErrorKind.TIMEOUT
            logger.warning(
                "Classification via %s exceeded %.0fs (%s)",
                self.backend.name,
                self.timeout_seconds,
                kind.value,
            )
            return ClassificationFailure(kind, detail="classification cancelled after timeout")

        if isinstance(outcome, ClassificationFailure):
            logger.info(
                "Classification failed: backend=%s kind=%s status=%s chars=%d",
                self.backend.name,
                outcome.kind.value,
                outcome.status_code,
                len(request.text),
            )
        else:
            logger.debug(
                "Classification ok: backend=%s latency_ms=%s chars=%d",
                outcome.backend,
                outcome.latency_ms,
                len(request.text),
            )
        return outcome
