# src/llm/structured.py — v2
"""Structured output helpers: schema translation, parsing and validation."""

from __future__ import annotations

import json
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pagepilot.llm.errors import StructuredOutputError
from pagepilot.llm.models import (
    ChatImage,
    ChatMessage,
    ContentPart,
    ImageUrl,
    ImageUrlPart,
    ResponseModel,
    TextPart,
)

T = TypeVar("T", bound=BaseModel)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def response_format_for(response_model: ResponseModel) -> dict[str, Any]:
    """OpenAI-style ``json_schema`` response_format for a response model."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": response_model.name,
            "schema": response_model.json_schema(),
            "strict": False,
        },
    }


def parse_structured(payload: str | dict[str, Any] | None, schema: type[T]) -> T:
    """Parse a model's textual payload and validate it against ``schema``.

    Raises:
        StructuredOutputError: Payload is missing, not JSON, or fails validation.
    """
    if payload is None:
        raise StructuredOutputError("Response contained no structured payload")

    if isinstance(payload, str):
        text = payload.strip()
        fenced = _FENCE_RE.match(text)
        if fenced:
            text = fenced.group(1)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise StructuredOutputError(f"Response is not valid JSON: {e}", raw=payload) from e
    else:
        data = payload

    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise StructuredOutputError(
            f"Response does not match schema {schema.__name__}: {e}",
            raw=payload if isinstance(payload, str) else json.dumps(payload),
        ) from e


def append_image_message(
    messages: list[ChatMessage], image: ChatImage | None
) -> list[ChatMessage]:
    """Return a copy of ``messages`` with the screenshot appended as a user message.

    The image comes first as a base64 data URL; the description, when
    present, follows as a text part.
    """
    result = [m.model_copy(deep=True) for m in messages]
    if image is None:
        return result

    parts: list[ContentPart] = [ImageUrlPart(image_url=ImageUrl(url=image.data_url()))]
    if image.description:
        parts.append(TextPart(text=image.description))
    result.append(ChatMessage(role="user", content=parts))
    return result
