"""Recommendation catalog client (``GET /recommendations``)."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

import httpx

from moodline.core.auth import AuthContext

from .contracts import RECOMMENDATION_TYPES, EmotionLabel, Recommendation

logger = logging.getLogger(__name__)

RECOMMENDATIONS_PATH = "/recommendations"
RANDOM_PATH = "/recommendations/random"


def _to_recommendation(row: Any) -> Recommendation | None:
    if not isinstance(row, dict):
        return None
    kind = str(row.get("type", "")).lower()
    title = row.get("title")
    if kind not in RECOMMENDATION_TYPES or not isinstance(title, str):
        return None
    tags = row.get("tags") or []
    return Recommendation(
        id=str(row.get("id", "")),
        type=kind,
        title=title,
        emotion=str(row.get("emotion", "")),
        description=row.get("description"),
        url=row.get("url"),
        tags=tuple(str(tag) for tag in tags) if isinstance(tags, list) else (),
    )


def _parse(data: Any) -> list[Recommendation]:
    if isinstance(data, dict) and "data" in data:
        data = data["data"]
    if not isinstance(data, list):
        return []
    items = [_to_recommendation(row) for row in data]
    return [item for item in items if item is not None]


class RecommendationCatalog:
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

    async def _get(self, path: str, params: dict[str, Any], auth: Optional[AuthContext]) -> list[Recommendation]:
        headers = auth.bearer_headers() if auth else {}
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as client:
                resp = await client.get(path, headers=headers, params=params)
                resp.raise_for_status()
                return _parse(resp.json())
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to fetch recommendations from %s: %s", path, exc)
            return []

    async def get_recommendations(
        self,
        emotion: EmotionLabel | str,
        types: Iterable[str] | None,
        auth: Optional[AuthContext],
    ) -> list[Recommendation]:
        label = EmotionLabel(emotion).value
        params: dict[str, Any] = {"emotion": label}
        wanted = [t for t in (types or []) if t in RECOMMENDATION_TYPES]
        if wanted:
            params["types"] = ",".join(wanted)
        return await self._get(RECOMMENDATIONS_PATH, params, auth)

    async def get_random(self, count: int = 5, auth: Optional[AuthContext] = None) -> list[Recommendation]:
        return await self._get(RANDOM_PATH, {"count": max(1, count)}, auth)
