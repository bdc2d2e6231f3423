"""LLM response parser utility.

StructuredCompleter runs every raw completion through parse_llm_json() to
get a validated Pydantic model back. Models rarely return a bare JSON
object, so the parser tolerates what they actually send:
- JSON wrapped in markdown code blocks (```json ... ```)
- Commentary before or after the object, including stray braces in prose
- The object nested one level down under a single wrapper key, e.g.
  {"hypothesis": {...}} or {"signal": {...}}
- A confidence a hair outside [0.0, 1.0]
"""

import json
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)

_FENCE = re.compile(r"```(?:json)?")
_decoder = json.JSONDecoder()


class LLMParseError(Exception):
    """Raised when an LLM response cannot be parsed into the expected schema.

    Includes the raw response so callers can log it for debugging without
    having to catch and re-wrap the original exception themselves.
    """

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw


def parse_llm_json(response: str, schema: type[T]) -> T:
    """Parse an LLM response string into a validated Pydantic model.

    The first JSON object found in the response is used. If it has none of
    the schema's fields but wraps exactly one object, that inner object is
    validated instead.

    Args:
        response: Raw string returned by LLMClient.complete().
        schema: Pydantic model class to validate against.

    Returns:
        A validated instance of schema.

    Raises:
        LLMParseError: If no JSON object is found or it does not match the
            schema. The .raw attribute contains the original response.
    """
    data = _first_json_object(_FENCE.sub("", response))
    if data is None:
        raise LLMParseError(
            f"No valid JSON found in LLM response for schema {schema.__name__}",
            raw=response,
        )

    data = _unwrap(data, schema)
    _clamp_confidence(data)

    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise LLMParseError(
            f"LLM response does not match schema {schema.__name__}: {exc}",
            raw=response,
        ) from exc


# ── Private helpers ────────────────────────────────────────────────────────────

def _first_json_object(text: str) -> dict[str, Any] | None:
    """Decode the first {...} in text that parses as a JSON object."""
    start = text.find("{")
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None


def _unwrap(data: dict[str, Any], schema: type[BaseModel]) -> dict[str, Any]:
    """Step into {"wrapper": {...}} when the outer object has no schema fields."""
    if data.keys() & schema.model_fields.keys():
        return data
    if len(data) == 1:
        (inner,) = data.values()
        if isinstance(inner, dict):
            return inner
    return data


def _clamp_confidence(data: dict[str, Any]) -> None:
    """Clamp a numeric top-level confidence to [0.0, 1.0]."""
    value = data.get("confidence")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        data["confidence"] = max(0.0, min(1.0, float(value)))
