"""Remote backend: ``POST {API_URL}/emotions/analyze``."""

from __future__ import annotations

import logging
import math
import re
import time
from typing import Any, Optional

import httpx

from moodline.core.auth import AuthContext

from ..contracts import ClassificationFailure, ErrorKind, RawClassification
from .base import BaseClassifier, ClassifyOutcome

logger = logging.getLogger(__name__)

ANALYZE_PATH = "/emotions/analyze"

STATUS_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.INVALID_INPUT,
    401: ErrorKind.UNAUTHORIZED,
    404: ErrorKind.SERVICE_UNAVAILABLE,
    429: ErrorKind.RATE_LIMITED,
}

_WARMUP_RE = re.compile(r"model|loading|initiali[sz]|warming", re.IGNORECASE)


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or ""
    if isinstance(data, dict):
        for key in ("error", "message", "detail"):
            value = data.get(key)
            if isinstance(value, str):
                return value
        return ""
    return str(data)


def _int_or_none(value: Any) -> Optional[int]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return max(1, int(number))


def map_status(response: httpx.Response, *, warmup_retry_seconds: int = 5) -> ClassificationFailure:
    """Translate a non-200 response into the closed failure taxonomy."""
    status = response.status_code

    if status in STATUS_KINDS:
        retry_after = None
        if status == 429:
            retry_after = _int_or_none(response.headers.get("Retry-After"))
        return ClassificationFailure(STATUS_KINDS[status], status_code=status, retry_after_seconds=retry_after)

    message = _error_message(response)
    if status == 500 and _WARMUP_RE.search(message):
        estimated = None
        try:
            body = response.json()
            if isinstance(body, dict):
                estimated = _int_or_none(body.get("estimated_time"))
        except ValueError:
            pass
        return ClassificationFailure(
            ErrorKind.MODEL_WARMING_UP,
            detail=message,
            status_code=status,
            retry_after_seconds=estimated or warmup_retry_seconds,
        )

    return ClassificationFailure(ErrorKind.SERVER_ERROR, detail=message, status_code=status)


class RemoteClassifier(BaseClassifier):
    name = "remote"

    def __init__(
        self,
        base_url: str,
        *,
        warmup_retry_seconds: int = 5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._warmup_retry_seconds = warmup_retry_seconds
        self._transport = transport

    async def classify(
        self,
        text: str,
        auth: Optional[AuthContext],
        *,
        timeout_seconds: float = 30.0,
    ) -> ClassifyOutcome:
        headers = auth.bearer_headers() if auth else {"Content-Type": "application/json"}
        t0 = time.monotonic()

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=timeout_seconds,
                transport=self._transport,
            ) as client:
                resp = await client.post(ANALYZE_PATH, headers=headers, json={"text": text})
        except httpx.TimeoutException:
            return ClassificationFailure(ErrorKind.TIMEOUT, detail="classification request timed out")
        except httpx.TransportError as exc:
            logger.warning("Classifier unreachable: %s", exc)
            return ClassificationFailure(ErrorKind.NETWORK_UNAVAILABLE, detail=str(exc))

        elapsed = (time.monotonic() - t0) * 1000

        if resp.status_code != 200:
            failure = map_status(resp, warmup_retry_seconds=self._warmup_retry_seconds)
            logger.warning(
                "Classifier returned %s -> %s (%.0f ms)",
                resp.status_code,
                failure.kind.value,
                elapsed,
            )
            return failure

        try:
            payload = resp.json()
        except ValueError:
            logger.warning("Classifier returned a non-JSON 200 body")
            payload = None

        return RawClassification(payload=payload, backend=self.name, latency_ms=round(elapsed, 2))
