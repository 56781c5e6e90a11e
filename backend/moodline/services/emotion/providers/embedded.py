"""Embedded backend using a local transformers text-classification pipeline.

The model is loaded once per process. Loading tries the accelerated device
first and falls back to CPU once; whichever outcome happens (including total
failure) is cached in the ``ClassifierContext`` and never retried per request.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from moodline.core.auth import AuthContext

from ..contracts import ClassificationFailure, ErrorKind, RawClassification
from .base import BaseClassifier, ClassifyOutcome

logger = logging.getLogger(__name__)

CPU_DEVICE = "cpu"

Loader = Callable[[str, str], Any]


def load_text_pipeline(model_name: str, device: str) -> Any:
    from transformers import pipeline

    return pipeline("text-classification", model=model_name, top_k=None, device=device)


@dataclass(frozen=True)
class ModelHandle:
    pipeline: Any
    device: str
    accelerated: bool


class ClassifierContext:
    """Owns the model handle; initialization is lazy and mutually exclusive.

    The first caller creates a single initialization task under the lock;
    every other caller awaits that same task.
    """

    def __init__(
        self,
        model_name: str,
        *,
        device: str = "cuda:0",
        loader: Loader | None = None,
    ) -> None:
        self.model_name = model_name
        self.device = device
        self._loader = loader or load_text_pipeline
        self._lock = asyncio.Lock()
        self._init_task: asyncio.Task | None = None
        self.init_attempts = 0

    @property
    def ready(self) -> bool:
        return self._init_task is not None and self._init_task.done()

    @property
    def loading(self) -> bool:
        return self._init_task is not None and not self._init_task.done()

    async def acquire(self) -> Optional[ModelHandle]:
        """Return the cached handle, or ``None`` when no device could load the model."""
        async with self._lock:
            if self._init_task is None:
                self._init_task = asyncio.get_running_loop().create_task(self._initialize())
        # Waiters may be cancelled on timeout; the load itself keeps running.
        return await asyncio.shield(self._init_task)

    async def _initialize(self) -> Optional[ModelHandle]:
        self.init_attempts += 1
        t0 = time.monotonic()
        try:
            pipe = await asyncio.to_thread(self._loader, self.model_name, self.device)
            logger.info(
                "Loaded %s on %s in %.1fs", self.model_name, self.device, time.monotonic() - t0
            )
            return ModelHandle(pipeline=pipe, device=self.device, accelerated=self.device != CPU_DEVICE)
        except Exception as exc:
            if self.device == CPU_DEVICE:
                logger.error("Model %s unavailable: CPU initialization failed (%s)", self.model_name, exc)
                return None
            logger.warning(
                "Model init on %s failed (%s); falling back to %s", self.device, exc, CPU_DEVICE
            )

        try:
            pipe = await asyncio.to_thread(self._loader, self.model_name, CPU_DEVICE)
        except Exception as exc:
            logger.error("Model %s unavailable: CPU fallback failed (%s)", self.model_name, exc)
            return None
        logger.info("Loaded %s on %s (fallback)", self.model_name, CPU_DEVICE)
        return ModelHandle(pipeline=pipe, device=CPU_DEVICE, accelerated=False)


def _as_payload(output: Any) -> dict[str, Any]:
    # Single-string input with top_k=None yields a flat list; some versions nest it.
    rows = output[0] if output and isinstance(output[0], list) else output
    scores = [{"label": str(row["label"]), "score": float(row["score"])} for row in rows]
    scores.sort(key=lambda item: item["score"], reverse=True)
    top = scores[0] if scores else {"label": "", "score": None}
    return {"emotion": top["label"], "confidence": top["score"], "scores": scores}


class EmbeddedClassifier(BaseClassifier):
    name = "embedded"

    def __init__(self, context: ClassifierContext) -> None:
        self._context = context

    @property
    def context(self) -> ClassifierContext:
        return self._context

    def is_warming_up(self) -> bool:
        return self._context.loading

    async def classify(
        self,
        text: str,
        auth: Optional[AuthContext],
        *,
        timeout_seconds: float = 30.0,
    ) -> ClassifyOutcome:
        handle = await self._context.acquire()
        if handle is None:
            return ClassificationFailure(
                ErrorKind.SERVICE_UNAVAILABLE,
                detail="no device could initialize the emotion model",
            )

        t0 = time.monotonic()
        try:
            output = await asyncio.to_thread(handle.pipeline, text, truncation=True)
        except Exception as exc:
            logger.warning("Embedded inference failed on %s: %s", handle.device, exc)
            return ClassificationFailure(ErrorKind.SERVER_ERROR, detail=str(exc))
        elapsed = (time.monotonic() - t0) * 1000

        try:
            payload = _as_payload(output)
        except (KeyError, TypeError, ValueError, IndexError) as exc:
            logger.warning("Embedded model produced an unexpected output shape: %s", exc)
            payload = None
        return RawClassification(payload=payload, backend=self.name, latency_ms=round(elapsed, 2))
