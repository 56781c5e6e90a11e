"""Abstract base for all classification backends."""

from __future__ import annotations

import abc
from typing import Optional, Union

from moodline.core.auth import AuthContext

from ..contracts import ClassificationFailure, RawClassification

ClassifyOutcome = Union[RawClassification, ClassificationFailure]


class BaseClassifier(abc.ABC):
    """Contract that every classification backend must implement.

    Backends never raise for expected failures; they return a
    ``ClassificationFailure`` carrying the matching ``ErrorKind``.
    """

    name: str = "base"

    @abc.abstractmethod
    async def classify(
        self,
        text: str,
        auth: Optional[AuthContext],
        *,
        timeout_seconds: float = 30.0,
    ) -> ClassifyOutcome:
        """Classify *text* and return the raw payload or a typed failure."""

    def is_warming_up(self) -> bool:
        return False
