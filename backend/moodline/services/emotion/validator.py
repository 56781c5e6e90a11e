"""Input validation: runs before any network call."""

from __future__ import annotations

from typing import Union

from .contracts import ErrorKind, Rejected, ValidText

MAX_INPUT_CHARS = 3000


def validate(text: str | None, *, max_chars: int = MAX_INPUT_CHARS) -> Union[ValidText, Rejected]:
    """Return the trimmed text, or why it cannot be classified."""
    stripped = (text or "").strip()
    if not stripped:
        return Rejected(ErrorKind.EMPTY_INPUT)
    if len(stripped) > max_chars:
        return Rejected(ErrorKind.TOO_LONG)
    return ValidText(stripped)
