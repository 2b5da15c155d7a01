# src/cache/models.py — v2
"""Cache domain models: CacheOptions (key material) and CacheEntry.

The request id is not part of CacheOptions: it tags entries
but never changes which entry a request maps to.
"""

from __future__ import annotations

import base64
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from pagepilot.llm.models import ChatCompletionOptions, ChatMessage


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheOptions(BaseModel):
    """Everything that determines an LLM answer, in JSON-safe form."""

    model: str
    messages: list[dict[str, Any]]
    temperature: float | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    image: dict[str, Any] | None = None
    response_model: dict[str, Any] | None = None

    @classmethod
    def from_request(
        cls,
        model: str,
        messages: list[ChatMessage],
        options: ChatCompletionOptions,
    ) -> CacheOptions:
        """Build key material from the messages actually sent (image included)."""
        image = None
        if options.image is not None:
            image = {
                "buffer": base64.b64encode(options.image.buffer).decode("ascii"),
                "description": options.image.description,
            }
        return cls(
            model=model,
            messages=[m.model_dump(mode="json") for m in messages],
            temperature=options.temperature,
            top_p=options.top_p,
            frequency_penalty=options.frequency_penalty,
            presence_penalty=options.presence_penalty,
            image=image,
            response_model=(
                options.response_model.descriptor()
                if options.response_model is not None
                else None
            ),
        )


class CacheEntry(BaseModel):
    """Single cached LLM result and the request ids that produced or read it."""

    key: str
    value: Any
    request_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def tag(self, request_id: str | None) -> bool:
        """Add a request id tag. Returns True if the entry changed."""
        if not request_id or request_id in self.request_ids:
            return False
        self.request_ids.append(request_id)
        self.updated_at = _utcnow()
        return True
