"""Tests for the emotion history store client and the recommendation catalog."""

from datetime import date

import httpx
import pytest

from conftest import BASE_URL, ok_json
from moodline.services.emotion.contracts import EmotionLabel, HistoryEntry, HistoryFilter
from moodline.services.emotion.history import EmotionStore, dominant_emotion, summarize_history
from moodline.services.emotion.recommendations import RecommendationCatalog


def _entry(emotion):
    return HistoryEntry(emotion=emotion, intensity=0.5)


def test_summary_counts_and_percentages():
    entries = [_entry("joy"), _entry("joy"), _entry("sadness"), _entry("fear")]

    summary = summarize_history(entries)

    assert [(s.emotion, s.count, s.percentage) for s in summary] == [
        ("joy", 2, 50),
        ("sadness", 1, 25),
        ("fear", 1, 25),
    ]
    assert dominant_emotion(entries) == "joy"


def test_empty_summary():
    assert summarize_history([]) == []
    assert dominant_emotion([]) is None


@pytest.mark.asyncio
async def test_history_sends_date_filter_and_parses_rows(auth):
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers.get("Authorization")
        return ok_json(
            {
                "data": [
                    {"id": 7, "emotion": "JOY", "intensity": 0.8, "timestamp": "2024-03-01T10:00:00Z", "userId": 3},
                    {"emotion": 42},
                    "garbage",
                ]
            }
        )

    store = EmotionStore(BASE_URL, transport=httpx.MockTransport(handler))
    rows = await store.list_emotion_history(HistoryFilter(date(2024, 3, 1), date(2024, 3, 31)), auth)

    assert seen["params"] == {"startDate": "2024-03-01", "endDate": "2024-03-31"}
    assert seen["auth"] == f"Bearer {auth.token}"
    assert rows == [
        HistoryEntry(
            emotion="joy",
            intensity=0.8,
            timestamp="2024-03-01T10:00:00Z",
            id="7",
            user_id="3",
        )
    ]


@pytest.mark.asyncio
async def test_history_failures_return_empty(auth):
    missing = EmotionStore(BASE_URL, transport=httpx.MockTransport(lambda r: httpx.Response(404)))
    broken = EmotionStore(BASE_URL, transport=httpx.MockTransport(lambda r: httpx.Response(200, text="nope")))

    assert await missing.list_emotion_history(None, auth) == []
    assert await broken.list_emotion_history(None, auth) == []


@pytest.mark.asyncio
async def test_catalog_filters_types_and_rows(auth):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return ok_json(
            [
                {"id": "a", "type": "Book", "title": "Quiet", "emotion": "fear", "tags": ["calm"]},
                {"id": "b", "type": "vinyl", "title": "Unknown type"},
                {"id": "c", "type": "movie"},
            ]
        )

    catalog = RecommendationCatalog(BASE_URL, transport=httpx.MockTransport(handler))
    items = await catalog.get_recommendations(EmotionLabel.FEAR, ["book", "hologram"], auth)

    assert seen["path"] == "/api/recommendations"
    assert seen["params"] == {"emotion": "fear", "types": "book"}
    assert len(items) == 1
    assert items[0].type == "book"
    assert items[0].tags == ("calm",)


@pytest.mark.asyncio
async def test_random_recommendations(auth):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["count"] = request.url.params.get("count")
        return ok_json({"data": [{"id": 1, "type": "activity", "title": "Walk outside", "emotion": "joy"}]})

    catalog = RecommendationCatalog(BASE_URL, transport=httpx.MockTransport(handler))
    items = await catalog.get_random(3, auth)

    assert seen == {"path": "/api/recommendations/random", "count": "3"}
    assert [item.title for item in items] == ["Walk outside"]


@pytest.mark.asyncio
async def test_catalog_errors_return_empty(auth):
    catalog = RecommendationCatalog(BASE_URL, transport=httpx.MockTransport(lambda r: httpx.Response(500)))
    assert await catalog.get_recommendations("joy", None, auth) == []
