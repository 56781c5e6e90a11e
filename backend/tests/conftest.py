import asyncio
import json
from typing import Callable

import httpx
import jwt
import pytest

from moodline.core.auth import AuthContext
from moodline.core.config import get_settings
from moodline.services.emotion.contracts import ClassificationFailure, RawClassification
from moodline.services.emotion.providers.base import BaseClassifier

BASE_URL = "http://backend.test/api"


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # Tests mutate env vars; never leak a cached Settings instance across tests.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_token(sub: str = "user-42") -> str:
    token = jwt.encode({"sub": sub, "email": "tests@example.com"}, "test-secret", algorithm="HS256")
    if isinstance(token, bytes):
        token = token.decode("utf-8")
    return token


@pytest.fixture
def auth() -> AuthContext:
    return AuthContext.from_token(make_token())


def payload(emotion="joy", confidence=0.82, scores=None) -> dict:
    if scores is None:
        scores = [{"label": emotion, "score": confidence}, {"label": "anger", "score": 0.05}]
    return {"emotion": emotion, "confidence": confidence, "scores": scores}


def json_transport(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


def ok_json(data, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(data), headers={"Content-Type": "application/json"})


class StaticClassifier(BaseClassifier):
    """Returns a fixed outcome and records every call."""

    name = "static"

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls: list[str] = []

    async def classify(self, text, auth, *, timeout_seconds=30.0):
        self.calls.append(text)
        if isinstance(self.outcome, (RawClassification, ClassificationFailure)):
            return self.outcome
        return RawClassification(payload=self.outcome, backend=self.name)


class GatedClassifier(BaseClassifier):
    """Blocks every call until ``release`` is set; tracks concurrency."""

    name = "gated"

    def __init__(self, data: dict):
        self.data = data
        self.release = asyncio.Event()
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def classify(self, text, auth, *, timeout_seconds=30.0):
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await self.release.wait()
        finally:
            self.in_flight -= 1
        return RawClassification(payload=self.data, backend=self.name)


class FixedRng:
    """Random source that always returns the same index."""

    def __init__(self, index: int = 0):
        self.index = index
        self.calls = 0

    def randrange(self, stop: int) -> int:
        self.calls += 1
        return self.index % stop
