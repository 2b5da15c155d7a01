# src/logging/context.py — v2
"""Contextual logging support — attach request_id, model, provider to log records.

Clients set these per completion call so every record emitted while a call
is in flight carries the request scope it belongs to.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_model: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "model", default=None
)
_provider: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "provider", default=None
)


@dataclass
class LogContext:
    """Snapshot of the current logging context."""

    request_id: str | None = None
    model: str | None = None
    provider: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        model=_model.get(),
        provider=_provider.get(),
    )


def set_request_context(request_id: str | None) -> None:
    """Set the request scope (called once per completion call)."""
    _request_id.set(request_id)


def set_client_context(model: str, provider: str) -> None:
    """Set the client identity for the current task."""
    _model.set(model)
    _provider.set(provider)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _model.set(None)
    _provider.set(None)
