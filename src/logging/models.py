# src/logging/models.py — v1
"""Structured log events emitted by LLM clients and the cache.

A LogLine is what the browser-automation caller receives through its
logger callback: a category, a message, a verbosity level and a bag of
typed auxiliary values.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Literal

from pydantic import BaseModel, Field

AuxiliaryType = Literal["string", "integer", "float", "boolean", "object"]


class AuxiliaryValue(BaseModel):
    """Single auxiliary value attached to a log line."""

    value: str
    type: AuxiliaryType = "string"

    @classmethod
    def of(cls, value: Any) -> AuxiliaryValue:
        """Build from a Python value, inferring the type tag."""
        if isinstance(value, bool):
            return cls(value=str(value).lower(), type="boolean")
        if isinstance(value, int):
            return cls(value=str(value), type="integer")
        if isinstance(value, float):
            return cls(value=str(value), type="float")
        if isinstance(value, str):
            return cls(value=value, type="string")
        return cls(value=json.dumps(value, default=str), type="object")


class LogLine(BaseModel):
    """Structured log event.

    Levels follow the caller's verbosity scale: 0 = errors and always-shown
    events, 1 = informational, 2 = debug.
    """

    category: str = "llm"
    message: str
    level: Literal[0, 1, 2] = 1
    auxiliary: dict[str, AuxiliaryValue] = Field(default_factory=dict)

    @classmethod
    def build(
        cls,
        category: str,
        message: str,
        level: Literal[0, 1, 2] = 1,
        **auxiliary: Any,
    ) -> LogLine:
        """Convenience constructor; ``None`` auxiliary values are dropped."""
        return cls(
            category=category,
            message=message,
            level=level,
            auxiliary={
                k: AuxiliaryValue.of(v) for k, v in auxiliary.items() if v is not None
            },
        )

    def auxiliary_dict(self) -> dict[str, str]:
        """Flatten auxiliary values for log record injection."""
        return {k: v.value for k, v in self.auxiliary.items()}


LogSink = Callable[[LogLine], None]
