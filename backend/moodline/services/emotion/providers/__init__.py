"""Classifier selection by name, with a mock fallback for anything not allowed."""

from __future__ import annotations

import logging

from moodline.core.config import Settings, get_settings

from .base import BaseClassifier, ClassifyOutcome
from .embedded import ClassifierContext, EmbeddedClassifier
from .mock import MockClassifier
from .remote import RemoteClassifier

logger = logging.getLogger(__name__)

__all__ = [
    "get_classifier",
    "BaseClassifier",
    "ClassifierContext",
    "ClassifyOutcome",
    "EmbeddedClassifier",
    "MockClassifier",
    "RemoteClassifier",
]


def get_classifier(
    backend_name: str | None = None,
    *,
    settings: Settings | None = None,
    context: ClassifierContext | None = None,
) -> BaseClassifier:
    """Return a classifier for *backend_name* (defaults to ``CLASSIFIER_BACKEND``).

    Backends outside the allowlist, or unknown names, fall back to
    ``MockClassifier`` with a warning. ``context`` lets callers share one
    embedded model handle across classifiers.
    """
    settings = settings or get_settings()
    name = (backend_name or settings.classifier_backend).lower().strip()

    if name not in settings.allowed_backends:
        logger.warning("Backend %r not in allowlist – falling back to mock", name)
        return MockClassifier()

    if name == "mock":
        return MockClassifier()

    if name == "remote":
        if not settings.api_url:
            logger.warning("API_URL not set – falling back to mock")
            return MockClassifier()
        return RemoteClassifier(settings.api_url, warmup_retry_seconds=settings.warmup_retry_seconds)

    if name == "embedded":
        ctx = context or ClassifierContext(
            settings.embedded_model_name,
            device=settings.embedded_device,
        )
        return EmbeddedClassifier(ctx)

    logger.warning("Unknown backend %r – falling back to mock", name)
    return MockClassifier()
