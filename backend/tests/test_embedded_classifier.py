"""Tests for the embedded classifier's lazy model initialization."""

import asyncio
import threading
import time

import pytest

from moodline.services.emotion.client import ClassificationClient
from moodline.services.emotion.contracts import EmotionLabel, ErrorKind, RawClassification, ValidText
from moodline.services.emotion.normalizer import normalize
from moodline.services.emotion.providers import ClassifierContext, EmbeddedClassifier


class _Loader:
    """Records (model, device) per call; fails on the listed devices."""

    def __init__(self, fail_on=(), delay=0.0, outputs=None):
        self.calls = []
        self.fail_on = set(fail_on)
        self.delay = delay
        self.outputs = outputs or [{"label": "joy", "score": 0.9}, {"label": "disgust", "score": 0.1}]
        self._mutex = threading.Lock()

    def __call__(self, model_name, device):
        with self._mutex:
            self.calls.append((model_name, device))
        if self.delay:
            time.sleep(self.delay)
        if device in self.fail_on:
            raise RuntimeError(f"{device} not available")
        return lambda text, truncation=True: list(self.outputs)


@pytest.mark.asyncio
async def test_concurrent_first_use_initializes_once(auth):
    loader = _Loader(delay=0.05)
    context = ClassifierContext("test-model", device="cuda:0", loader=loader)
    classifier = EmbeddedClassifier(context)

    outcomes = await asyncio.gather(*(classifier.classify(f"msg {i}", auth) for i in range(5)))

    assert context.init_attempts == 1
    assert loader.calls == [("test-model", "cuda:0")]
    assert all(isinstance(o, RawClassification) for o in outcomes)
    assert context.ready


@pytest.mark.asyncio
async def test_accelerator_failure_falls_back_to_cpu_once(auth):
    loader = _Loader(fail_on={"cuda:0"})
    context = ClassifierContext("test-model", loader=loader)
    classifier = EmbeddedClassifier(context)

    await classifier.classify("first", auth)
    await classifier.classify("second", auth)
    handle = await context.acquire()

    assert [device for _, device in loader.calls] == ["cuda:0", "cpu"]
    assert handle.device == "cpu"
    assert handle.accelerated is False


@pytest.mark.asyncio
async def test_total_failure_is_cached_as_service_unavailable(auth):
    loader = _Loader(fail_on={"cuda:0", "cpu"})
    classifier = EmbeddedClassifier(ClassifierContext("test-model", loader=loader))

    first = await classifier.classify("hello", auth)
    second = await classifier.classify("hello again", auth)

    assert first.kind == ErrorKind.SERVICE_UNAVAILABLE
    assert second.kind == ErrorKind.SERVICE_UNAVAILABLE
    assert len(loader.calls) == 2


@pytest.mark.asyncio
async def test_cpu_only_failure_does_not_retry():
    loader = _Loader(fail_on={"cpu"})
    context = ClassifierContext("test-model", device="cpu", loader=loader)

    assert await context.acquire() is None
    assert loader.calls == [("test-model", "cpu")]


@pytest.mark.asyncio
async def test_pipeline_output_normalizes(auth):
    classifier = EmbeddedClassifier(ClassifierContext("test-model", loader=_Loader()))

    raw = await classifier.classify("what a day", auth)
    result = normalize(raw)

    assert raw.backend == "embedded"
    assert result.emotion == EmotionLabel.JOY
    # labels outside the closed set collapse to neutral
    assert [s.label for s in result.all_scores] == ["joy", "neutral"]


@pytest.mark.asyncio
async def test_inference_error_is_server_error(auth):
    def loader(model_name, device):
        def pipe(text, truncation=True):
            raise ValueError("tensor shape mismatch")

        return pipe

    outcome = await EmbeddedClassifier(ClassifierContext("m", loader=loader)).classify("hi", auth)
    assert outcome.kind == ErrorKind.SERVER_ERROR


@pytest.mark.asyncio
async def test_timeout_during_load_reports_warmup(auth):
    loader = _Loader(delay=0.3)
    context = ClassifierContext("test-model", loader=loader)
    client = ClassificationClient(EmbeddedClassifier(context), timeout_seconds=0.05)

    outcome = await client.classify(ValidText("hello"), auth)

    assert outcome.kind == ErrorKind.MODEL_WARMING_UP
    # the load keeps going after the caller gave up
    handle = await context.acquire()
    assert handle is not None
    assert context.init_attempts == 1
