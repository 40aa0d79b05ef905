"""Decode-and-validate step at the collaborator boundary.

Model output is untrusted text. `decode_response` recovers the JSON object
(stripping markdown code fences and surrounding prose), then validates it
against the expected pydantic schema. Any failure raises
MalformedResponseError; callers never see partially-trusted dicts.
"""

from __future__ import annotations

import json
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from cruxboard.errors import MalformedResponseError

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def strip_code_fences(raw: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    return _FENCE_PATTERN.sub("", raw.strip()).strip()


def extract_json_object(raw: str) -> Any:
    """Parse the JSON object in `raw`, tolerating fences and surrounding prose.

    Raises:
        ValueError: If no JSON object can be recovered.
    """
    text = strip_code_fences(raw)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("No JSON object found in response")
    try:
        return json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in response: {e}") from e


def decode_response(
    raw: str,
    model: type[ModelT],
    *,
    operation: str | None = None,
    persona_id: str | None = None,
) -> ModelT:
    """Decode raw model output into `model`.

    Args:
        raw: Raw response text.
        model: Expected response schema.
        operation: Collaborator operation, for error context.
        persona_id: Persona the call was made for, for error context.

    Returns:
        Validated model instance.

    Raises:
        MalformedResponseError: If the text is not JSON or fails validation.
    """
    try:
        data = extract_json_object(raw)
    except ValueError as e:
        raise MalformedResponseError(
            f"{operation or 'response'}: {e}",
            raw=raw,
            operation=operation,
            persona_id=persona_id,
        ) from e

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(
            f"{operation or 'response'}: schema mismatch for {model.__name__}: "
            f"{e.error_count()} error(s)",
            raw=raw,
            operation=operation,
            persona_id=persona_id,
        ) from e
