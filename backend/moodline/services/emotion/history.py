"""Emotion history store client and summary helpers.

The store is append-only from this side: entries are posted once and never
updated or deleted here.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Iterable, Optional

import httpx

from moodline.core.auth import AuthContext

from .contracts import EmotionEntry, EmotionSummary, HistoryEntry, HistoryFilter

logger = logging.getLogger(__name__)

ADD_PATH = "/emotions/add"
HISTORY_PATH = "/emotions/history"


def _unwrap(data: Any) -> Any:
    if isinstance(data, dict) and "data" in data:
        return data["data"]
    return data


def _to_history_entry(row: Any) -> HistoryEntry | None:
    if not isinstance(row, dict) or not isinstance(row.get("emotion"), str):
        return None
    try:
        intensity = float(row.get("intensity", 0.0))
    except (TypeError, ValueError):
        intensity = 0.0
    return HistoryEntry(
        emotion=row["emotion"].lower(),
        intensity=intensity,
        timestamp=row.get("timestamp"),
        context=row.get("context"),
        id=str(row["id"]) if row.get("id") is not None else None,
        user_id=str(row["userId"]) if row.get("userId") is not None else None,
    )


class EmotionStore:
    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout_seconds,
            transport=self._transport,
        )

    async def append_emotion_entry(self, entry: EmotionEntry, auth: Optional[AuthContext]) -> bool:
        """POST one entry; ``False`` on any failure (the caller only logs it)."""
        headers = auth.bearer_headers() if auth else {}
        try:
            async with self._client() as client:
                resp = await client.post(ADD_PATH, headers=headers, json=entry.wire_body())
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Emotion entry %s dropped: %s", entry.id, exc)
            return False
        return True

    async def list_emotion_history(
        self,
        history_filter: HistoryFilter | None,
        auth: Optional[AuthContext],
    ) -> list[HistoryEntry]:
        """Return stored entries; an empty list when there is none or the store fails."""
        headers = auth.bearer_headers() if auth else {}
        params = history_filter.as_params() if history_filter else {}
        try:
            async with self._client() as client:
                resp = await client.get(HISTORY_PATH, headers=headers, params=params)
                resp.raise_for_status()
                data = _unwrap(resp.json())
        except httpx.HTTPStatusError as exc:
            # 404 just means no history yet
            if exc.response.status_code != 404:
                logger.warning("Failed to fetch emotion history: %s", exc)
            return []
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to fetch emotion history: %s", exc)
            return []

        if not isinstance(data, list):
            return []
        entries = [_to_history_entry(row) for row in data]
        return [entry for entry in entries if entry is not None]


def summarize_history(entries: Iterable[HistoryEntry]) -> list[EmotionSummary]:
    """Per-emotion counts with whole-number percentages, most frequent first."""
    counts = Counter(entry.emotion for entry in entries)
    total = sum(counts.values())
    if not total:
        return []
    return [
        EmotionSummary(emotion=emotion, count=count, percentage=round(count / total * 100))
        for emotion, count in counts.most_common()
    ]


def dominant_emotion(entries: Iterable[HistoryEntry]) -> str | None:
    summary = summarize_history(entries)
    return summary[0].emotion if summary else None
