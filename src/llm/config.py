# src/llm/config.py — v2
"""Model catalogue and provider resolution.

Resolution order:
  1. Override: client options carrying a backend URL route to the
     Codebuff proxy (credentials present, or model is codebuff-latest)
     or to the generic HTTP backend.
  2. Static model -> provider mapping.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, get_args

from pagepilot.llm.errors import UnsupportedModelError
from pagepilot.llm.options import ClientOptions, has_backend_url, normalize_keys

AvailableModel = Literal[
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4o-2024-08-06",
    "o1-mini",
    "o1-preview",
    "o3-mini",
    "claude-3-5-sonnet-latest",
    "claude-3-5-sonnet-20240620",
    "claude-3-5-sonnet-20241022",
    "codebuff-latest",
]

ModelProvider = Literal["openai", "anthropic", "codebuff", "backend"]

AVAILABLE_MODELS: tuple[str, ...] = get_args(AvailableModel)

MODEL_TO_PROVIDER: dict[str, ModelProvider] = {
    "gpt-4o": "openai",
    "gpt-4o-mini": "openai",
    "gpt-4o-2024-08-06": "openai",
    "o1-mini": "openai",
    "o1-preview": "openai",
    "o3-mini": "openai",
    "claude-3-5-sonnet-latest": "anthropic",
    "claude-3-5-sonnet-20240620": "anthropic",
    "claude-3-5-sonnet-20241022": "anthropic",
    "codebuff-latest": "codebuff",
}

CODEBUFF_MODEL = "codebuff-latest"


@dataclass(frozen=True)
class ProviderAssignment:
    """Resolved provider for a model name."""

    provider: str
    model: str
    source: str  # "model" or "override"

    @property
    def key(self) -> str:
        """Return 'provider:model' string."""
        return f"{self.provider}:{self.model}"


def _has_codebuff_credentials(options: Mapping[str, Any] | ClientOptions) -> bool:
    if isinstance(options, ClientOptions):
        raw = options.model_dump(exclude_none=True)
    else:
        raw = normalize_keys(options)
    return bool(raw.get("auth_token") or raw.get("fingerprint_id"))


def resolve_provider(
    model_name: str,
    client_options: Mapping[str, Any] | ClientOptions | None = None,
    model_map: Mapping[str, str] | None = None,
) -> ProviderAssignment:
    """Resolve which provider serves ``model_name``.

    Raises:
        UnsupportedModelError: Unknown model and no backend URL override.
    """
    mapping = MODEL_TO_PROVIDER if model_map is None else model_map

    if client_options is not None and has_backend_url(client_options):
        if model_name == CODEBUFF_MODEL or _has_codebuff_credentials(client_options):
            return ProviderAssignment("codebuff", model_name, "override")
        return ProviderAssignment("backend", model_name, "override")

    provider = mapping.get(model_name)
    if provider is None:
        raise UnsupportedModelError(f"Unsupported model: {model_name}")
    return ProviderAssignment(provider, model_name, "model")


def is_reasoning_model(model_name: str) -> bool:
    """o1/o3 family: no system role, no sampling parameters."""
    return model_name.startswith(("o1", "o3"))
