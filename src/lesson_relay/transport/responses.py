"""Upstream response shapes and the single place that knows how to read them.

Gemini answers ``generateContent`` with one JSON document and
``streamGenerateContent`` with a JSON array delivered in arbitrary byte
chunks. Both are wrapped here so the rest of the package never indexes into
raw payloads directly.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Iterator, Mapping

from .errors import ResponseShapeError

# Forgiving match for ``"text": "<escaped string>"``; works on truncated arrays.
TEXT_FIELD_PATTERN = re.compile(r'"text":\s*"((?:[^"\\]|\\.)*)"')


@dataclass(slots=True, frozen=True)
class SingleResponse:
    """A complete ``generateContent`` JSON document."""

    payload: Mapping[str, Any]


@dataclass(slots=True, frozen=True)
class StreamedFragment:
    """Raw text of a (possibly unterminated) streamed JSON array."""

    raw: str


def extract_candidate_text(payload: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or raise ResponseShapeError."""

    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ResponseShapeError(
            f"Response is missing candidates[0].content.parts[0].text ({exc.__class__.__name__})"
        ) from exc
    if not isinstance(text, str):
        raise ResponseShapeError(f"Candidate text has type {type(text).__name__}, expected str")
    return text


def array_bounds(raw: str) -> tuple[int, int]:
    """Return the scan window of ``raw`` with an outer ``[`` / ``]`` left out."""

    start = 1 if raw.startswith("[") else 0
    end = len(raw)
    if end > start and raw.endswith("]"):
        end -= 1
    return start, end


def iter_text_matches(
    raw: str, start: int = 0, end: int | None = None
) -> Iterator[tuple[int, str | None]]:
    """Yield ``(match_end, unescaped_text)`` for every text field in ``raw[start:end]``.

    ``unescaped_text`` is None when the captured literal is not a valid JSON
    string (for example a dangling escape); callers skip those.
    """

    if end is None:
        end = len(raw)
    for match in TEXT_FIELD_PATTERN.finditer(raw, start, end):
        try:
            value = json.loads(f'"{match.group(1)}"')
        except json.JSONDecodeError:
            value = None
        yield match.end(), value


def extract_text(response: SingleResponse | StreamedFragment) -> str:
    """Narrow extraction interface over both upstream shapes."""

    if isinstance(response, SingleResponse):
        return extract_candidate_text(response.payload)
    if isinstance(response, StreamedFragment):
        start, end = array_bounds(response.raw)
        return "".join(
            value for _, value in iter_text_matches(response.raw, start, end) if value is not None
        )
    raise TypeError(f"Unsupported response type: {type(response).__name__}")


__all__ = [
    "SingleResponse",
    "StreamedFragment",
    "TEXT_FIELD_PATTERN",
    "array_bounds",
    "extract_candidate_text",
    "extract_text",
    "iter_text_matches",
]
