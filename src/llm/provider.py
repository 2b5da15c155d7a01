# src/llm/provider.py — v2
"""LLMProvider: pick, build and wire provider clients.

The router resolves a model name to a provider (see llm/config.py for the
backend-URL override), instantiates the registered client class with the
shared log sink and cache, and owns request-scoped cache cleanup.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Mapping
from typing import Any

from pagepilot.cache.llm_cache import LLMCache
from pagepilot.config.settings import Settings
from pagepilot.llm.base_client import DEFAULT_RETRIES, BaseLLMClient
from pagepilot.llm.config import MODEL_TO_PROVIDER, resolve_provider
from pagepilot.llm.errors import UnsupportedProviderError
from pagepilot.llm.options import ClientOptions, normalize_keys
from pagepilot.llm.retry import RetryConfig
from pagepilot.logging.logger import emit, logging_sink, verbosity_sink
from pagepilot.logging.models import LogLine, LogSink

logger = logging.getLogger(__name__)

# Registry of provider name → client class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "openai": "pagepilot.llm.adapters.openai_adapter.OpenAIClient",
    "anthropic": "pagepilot.llm.adapters.anthropic_adapter.AnthropicClient",
    "backend": "pagepilot.llm.adapters.backend_adapter.BackendLLMClient",
    "codebuff": "pagepilot.llm.adapters.codebuff_adapter.CodebuffClient",
}


class LLMProvider:
    """Router/factory for LLM clients sharing one cache and one log sink."""

    def __init__(
        self,
        log_sink: LogSink | None = None,
        enable_caching: bool = False,
        cache: LLMCache | None = None,
        settings: Settings | None = None,
        retry_config: RetryConfig | None = None,
        model_map: Mapping[str, str] | None = None,
    ) -> None:
        self._log_sink = log_sink or logging_sink
        self._settings = settings
        self.enable_caching = enable_caching
        self.model_map = dict(MODEL_TO_PROVIDER if model_map is None else model_map)

        if enable_caching and cache is None:
            from pagepilot.cache.cache_factory import create_cache_store
            cache = LLMCache(create_cache_store(settings), log_sink=self._log_sink)
        self.cache = cache if enable_caching else None

        if retry_config is None and settings is not None:
            retry_config = RetryConfig(
                base_delay_s=settings.retry_base_delay_s,
                backoff_factor=settings.retry_backoff_factor,
                jitter=settings.retry_jitter,
            )
        self._retry_config = retry_config
        self._default_retries = (
            settings.llm_max_retries if settings is not None else DEFAULT_RETRIES
        )

    @classmethod
    def from_settings(cls, settings: Settings, log_sink: LogSink | None = None) -> LLMProvider:
        """Build a provider with caching and retry policy taken from settings.

        Clients it creates default to ``settings.llm_max_retries`` retries.
        """
        return cls(
            log_sink=log_sink or verbosity_sink(settings.verbose),
            enable_caching=settings.enable_caching,
            settings=settings,
        )

    async def clean_request_cache(self, request_id: str) -> None:
        """Drop every cache entry tagged with ``request_id``. No-op without caching."""
        if not self.enable_caching or self.cache is None:
            return

        emit(
            self._log_sink,
            LogLine.build("llm_cache", "cleaning up cache", level=1, requestId=request_id),
        )
        await self.cache.delete_cache_for_request_id(request_id)

    def get_client(
        self,
        model_name: str,
        client_options: Mapping[str, Any] | ClientOptions | None = None,
        **client_kwargs: Any,
    ) -> BaseLLMClient:
        """Instantiate the client serving ``model_name``.

        Args:
            model_name: Model identifier (see AvailableModel).
            client_options: Provider options; a backend URL here forces the
                backend/proxy provider regardless of the model mapping.
            **client_kwargs: Extra constructor arguments (e.g. an injected
                SDK or HTTP client).

        Raises:
            UnsupportedModelError: Unknown model and no override applies.
            UnsupportedProviderError: Resolved provider has no registered class.
            LLMConfigurationError: Required client options are missing.
        """
        assignment = resolve_provider(model_name, client_options, self.model_map)

        class_path = _PROVIDER_REGISTRY.get(assignment.provider)
        if class_path is None:
            raise UnsupportedProviderError(f"Unsupported provider: {assignment.provider}")
        client_cls = _import_class(class_path)

        client = client_cls(
            model_name=model_name,
            client_options=self._merge_options(assignment.provider, client_options),
            cache=self.cache,
            enable_caching=self.enable_caching,
            log_sink=self._log_sink,
            retry_config=self._retry_config,
            default_retries=self._default_retries,
            **client_kwargs,
        )
        logger.debug(
            "Created LLM client: %s (source: %s)", assignment.key, assignment.source
        )
        return client

    def _merge_options(
        self,
        provider: str,
        client_options: Mapping[str, Any] | ClientOptions | None,
    ) -> dict[str, Any]:
        """Settings-derived options overlaid by the caller's explicit ones."""
        merged: dict[str, Any] = {}
        if self._settings is not None:
            merged.update(self._settings.client_options_for(provider))
        if isinstance(client_options, ClientOptions):
            merged.update(client_options.model_dump(exclude_none=True))
        elif client_options:
            merged.update(normalize_keys(client_options))
        return merged


def register_provider(name: str, class_path: str) -> None:
    """Register a custom client class for a provider name.

    Args:
        name: Provider identifier.
        class_path: Fully qualified path of a BaseLLMClient subclass.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s → %s", name, class_path)


def available_models() -> dict[str, str]:
    """Supported model ids and their default providers."""
    return dict(MODEL_TO_PROVIDER)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
