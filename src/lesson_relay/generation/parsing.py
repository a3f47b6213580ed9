"""Turning model output text into JSON items."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping

import jsonschema
from jsonschema.exceptions import best_match

from ..transport.errors import ParseError

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```json|```")

MCQ_ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["question", "options", "correctAnswer"],
    "properties": {
        "question": {"type": "string", "minLength": 1},
        "options": {
            "type": "array",
            "items": {"type": "string"},
            "minItems": 4,
            "maxItems": 4,
        },
        "correctAnswer": {"type": "integer", "minimum": 0, "maximum": 3},
        "explanation": {"type": "string"},
        "mnemonic": {"type": "string"},
        "concept": {"type": "string"},
    },
}

CHAPTER_ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["title"],
    "properties": {
        "title": {"type": "string", "minLength": 1},
        "description": {"type": "string"},
    },
}


def clean_json(text: str) -> str:
    """Strip markdown code fences the model wraps around JSON."""

    return _FENCE_PATTERN.sub("", text).strip()


def _excerpt(text: str) -> str:
    return text.strip().replace("\n", " ")[:200]


def parse_json_document(text: str) -> Any:
    cleaned = clean_json(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ParseError(
            f"Model output is not valid JSON: {exc.msg}", excerpt=_excerpt(cleaned)
        ) from exc


def parse_json_items(text: str, schema: Mapping[str, Any] | None = None) -> list[Any]:
    """Parse a JSON array from model output; empty output means no items.

    Items that fail ``schema`` are kept and only logged, so downstream
    consumers decide how strict to be.
    """

    cleaned = clean_json(text or "")
    if not cleaned:
        return []
    parsed = parse_json_document(cleaned)
    if not isinstance(parsed, list):
        raise ParseError(
            f"Expected a JSON array, got {type(parsed).__name__}", excerpt=_excerpt(cleaned)
        )
    if schema is not None:
        validator = jsonschema.Draft7Validator(schema)
        for index, item in enumerate(parsed):
            error = best_match(validator.iter_errors(item))
            if error is not None:
                logger.warning("Item %d failed schema validation: %s", index, error.message)
    return parsed


__all__ = [
    "CHAPTER_ITEM_SCHEMA",
    "MCQ_ITEM_SCHEMA",
    "clean_json",
    "parse_json_document",
    "parse_json_items",
]
