"""
JSON Extractor

Recovers a single JSON object from model output that may be wrapped in
commentary or code fences. The only recovery applied is trimming to the
first '{' and the last '}'.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from pydantic import BaseModel, ValidationError

from catto.core.exceptions import ResponseParseError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_EXCERPT_CHARS = 200


def extract_json(text: str | None) -> dict[str, Any]:
    """
    Parse the object spanning the first '{' to the last '}' of text.

    Raises:
        ResponseParseError: No braces, invalid JSON, or a non-object value.
    """
    text = text or ""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise ResponseParseError("No JSON object found in model output", _excerpt(text))

    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Invalid JSON in model output: {e.msg}", _excerpt(text)) from e

    if not isinstance(data, dict):
        raise ResponseParseError("Model output JSON is not an object", _excerpt(text))
    return data


@dataclass(frozen=True)
class Parsed(Generic[T]):
    """Model output that was recovered and validated."""

    value: T


@dataclass(frozen=True)
class ParseFailure:
    """Model output that could not be turned into the expected schema."""

    reason: str
    excerpt: str = ""

    def to_error(self) -> ResponseParseError:
        return ResponseParseError(self.reason, self.excerpt or None)


ParseResult = Union[Parsed[T], ParseFailure]


def parse_model_response(text: str | None, schema: type[T]) -> Parsed[T] | ParseFailure:
    """Extract and validate model output against a schema without raising."""
    try:
        data = extract_json(text)
    except ResponseParseError as e:
        logger.warning("Model output not parseable as %s: %s", schema.__name__, e.message)
        return ParseFailure(reason=e.message, excerpt=e.excerpt or "")

    try:
        return Parsed(schema.model_validate(data))
    except ValidationError as e:
        logger.warning("Model output failed %s validation: %s", schema.__name__, e)
        return ParseFailure(
            reason=f"Model output does not match {schema.__name__}: {e.error_count()} error(s)",
            excerpt=_excerpt(text or ""),
        )


def _excerpt(text: str) -> str:
    return text[:_EXCERPT_CHARS]
