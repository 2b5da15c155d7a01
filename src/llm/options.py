# src/llm/options.py — v1
"""Per-provider client options.

Callers may pass either one of these models or a plain mapping; mappings are
validated at client construction so a missing credential fails before any
request is attempted.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from pagepilot.llm.errors import LLMConfigurationError

_CAMEL_ALIASES = {
    "apiKey": "api_key",
    "baseURL": "base_url",
    "backendUrl": "backend_url",
    "maxRetries": "max_retries",
    "authToken": "auth_token",
    "fingerprintId": "fingerprint_id",
}

O = TypeVar("O", bound="ClientOptions")


class ClientOptions(BaseModel):
    """Fields every provider accepts."""

    model_config = ConfigDict(extra="ignore")

    max_retries: int | None = None
    timeout: float | None = None


class OpenAIClientOptions(ClientOptions):
    api_key: str | None = None
    organization: str | None = None
    base_url: str | None = None


class AnthropicClientOptions(ClientOptions):
    api_key: str | None = None
    base_url: str | None = None


class BackendClientOptions(OpenAIClientOptions):
    backend_url: str

    @field_validator("backend_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:  # noqa: N805
        return v.rstrip("/")


class CodebuffClientOptions(ClientOptions):
    backend_url: str
    auth_token: str
    fingerprint_id: str

    @field_validator("backend_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:  # noqa: N805
        return v.rstrip("/")


def normalize_keys(options: Mapping[str, Any]) -> dict[str, Any]:
    """Accept the camelCase spellings browser-side callers tend to use."""
    return {_CAMEL_ALIASES.get(k, k): v for k, v in options.items()}


def has_backend_url(options: Mapping[str, Any] | ClientOptions | None) -> bool:
    """True when options carry a backend URL (the provider override trigger)."""
    if options is None:
        return False
    if isinstance(options, ClientOptions):
        return bool(getattr(options, "backend_url", None))
    return bool(normalize_keys(options).get("backend_url"))


def coerce_options(
    options_cls: type[O],
    options: Mapping[str, Any] | ClientOptions | None,
    client_name: str,
) -> O:
    """Validate raw options into ``options_cls``.

    Raises:
        LLMConfigurationError: A required field is missing or empty.
    """
    if isinstance(options, options_cls):
        raw: dict[str, Any] = options.model_dump()
    elif isinstance(options, ClientOptions):
        raw = options.model_dump(exclude_none=True)
    else:
        raw = normalize_keys(options or {})

    required = [
        name for name, field in options_cls.model_fields.items() if field.is_required()
    ]
    for name in required:
        if not raw.get(name):
            raise LLMConfigurationError(
                f"{name} must be provided in client_options for {client_name}"
            )

    try:
        return options_cls.model_validate(raw)
    except ValidationError as e:
        raise LLMConfigurationError(f"Invalid client_options for {client_name}: {e}") from e
