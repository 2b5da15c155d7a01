# src/llm/base_client.py — v3
"""Abstract LLM client interface and the shared completion pipeline.

BaseLLMClient is the capability every provider implements. CachingLLMClient
adds the pipeline most providers share:

    copy options -> append screenshot -> cache lookup -> send
    -> (structured) parse + validate -> cache store -> return

Transport failures and invalid structured output are retried from one
budget by ``with_retry``. Subclasses only translate requests and responses
to their wire protocol.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar

from pydantic import BaseModel

from pagepilot.cache.llm_cache import LLMCache
from pagepilot.cache.models import CacheOptions
from pagepilot.llm.errors import InvalidResponseSchemaError, StructuredOutputError
from pagepilot.llm.models import ChatCompletionOptions, ChatMessage, LLMResponse
from pagepilot.llm.options import ClientOptions, coerce_options
from pagepilot.llm.retry import RetryConfig, with_retry
from pagepilot.llm.structured import append_image_message, parse_structured
from pagepilot.logging.context import set_client_context, set_request_context
from pagepilot.logging.logger import emit
from pagepilot.logging.models import LogLine, LogSink

DEFAULT_RETRIES = 3


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    type: ClassVar[str] = "base"

    def __init__(
        self,
        model_name: str,
        log_sink: LogSink | None = None,
        default_retries: int = DEFAULT_RETRIES,
    ) -> None:
        self.model_name = model_name
        self._log_sink = log_sink
        self.default_retries = default_retries

    @abstractmethod
    async def create_chat_completion(
        self,
        options: ChatCompletionOptions,
        logger: LogSink | None = None,
        retries: int | None = None,
    ) -> Any:
        """Run one completion.

        Returns an LLMResponse, or an instance of
        ``options.response_model.schema_`` when structured output was requested.
        ``retries`` falls back to the client's ``default_retries``.
        """

    @property
    def provider_name(self) -> str:
        """Provider identifier (openai, anthropic, backend, codebuff)."""
        return self.type

    def _log(self, sink: LogSink | None, message: str, level: int = 1, **auxiliary: Any) -> None:
        emit(sink, LogLine.build(self.type, message, level=level, **auxiliary))


class CachingLLMClient(BaseLLMClient):
    """Client with cache lookup, bounded retries and schema validation."""

    options_model: ClassVar[type[ClientOptions]] = ClientOptions
    transport_errors: ClassVar[tuple[type[BaseException], ...]] = ()

    def __init__(
        self,
        model_name: str,
        client_options: Mapping[str, Any] | ClientOptions | None = None,
        cache: LLMCache | None = None,
        enable_caching: bool = False,
        log_sink: LogSink | None = None,
        retry_config: RetryConfig | None = None,
        default_retries: int = DEFAULT_RETRIES,
    ) -> None:
        super().__init__(model_name, log_sink, default_retries)
        self.client_options = coerce_options(
            self.options_model, client_options, type(self).__name__
        )
        self._cache = cache
        self._enable_caching = enable_caching
        self._retry_config = retry_config

    @property
    def caching(self) -> bool:
        return self._enable_caching and self._cache is not None

    # --- Provider hooks ---

    @abstractmethod
    async def _send(
        self, messages: list[ChatMessage], options: ChatCompletionOptions
    ) -> LLMResponse:
        """Send one wire request and normalize the answer.

        Transport failures must raise one of ``transport_errors``.
        """

    def _structured_payload(self, response: LLMResponse) -> str | dict[str, Any] | None:
        """Textual payload holding the structured output."""
        return response.content

    # --- Pipeline ---

    async def create_chat_completion(
        self,
        options: ChatCompletionOptions,
        logger: LogSink | None = None,
        retries: int | None = None,
    ) -> Any:
        if retries is None:
            retries = self.default_retries
        sink = logger or self._log_sink
        request_id = options.request_id
        set_request_context(request_id)
        set_client_context(self.model_name, self.type)

        messages = append_image_message(options.messages, options.image)
        cache_options = CacheOptions.from_request(self.model_name, messages, options)

        self._log(
            sink,
            "creating chat completion",
            modelName=self.model_name,
            requestId=request_id,
            options=options.to_payload(),
        )

        if self.caching:
            cached = await self._cache.get(cache_options, request_id)
            if cached is not None:
                self._log(
                    sink,
                    "LLM cache hit - returning cached response",
                    requestId=request_id,
                    cachedResponse=cached,
                )
                return self._hydrate(cached, options)
            self._log(sink, "LLM cache miss - no cached response found", requestId=request_id)

        def on_retry(error: BaseException, left: int) -> None:
            self._log(
                sink,
                "retrying chat completion",
                level=1 if isinstance(error, StructuredOutputError) else 0,
                error=str(error),
                retriesLeft=left,
                requestId=request_id,
            )

        try:
            value = await with_retry(
                lambda: self._attempt(messages, options, sink),
                retries=retries,
                retry_on=self.transport_errors + (StructuredOutputError,),
                config=self._retry_config,
                on_retry=on_retry,
            )
        except StructuredOutputError as e:
            self._log(
                sink,
                "structured output failed validation, retries exhausted",
                level=0,
                error=str(e),
                requestId=request_id,
            )
            raise InvalidResponseSchemaError(
                schema_name=options.response_model.name if options.response_model else None
            ) from e
        except self.transport_errors as e:
            self._log(
                sink,
                f"error calling {self.type} service",
                level=0,
                error=str(e),
                requestId=request_id,
            )
            raise

        if self.caching:
            self._log(sink, "caching response", level=2, requestId=request_id)
            await self._cache.set(cache_options, value, request_id)

        return self._hydrate(value, options)

    async def _attempt(
        self,
        messages: list[ChatMessage],
        options: ChatCompletionOptions,
        sink: LogSink | None,
    ) -> Any:
        """One attempt: send, then (structured mode) parse and validate."""
        response = await self._send(messages, options)
        self._log(
            sink,
            "received chat completion response",
            level=2,
            response=response.model_dump(mode="json"),
            requestId=options.request_id,
        )
        if options.response_model is None:
            return response.model_dump(mode="json")

        parsed = parse_structured(
            self._structured_payload(response), options.response_model.schema_
        )
        return parsed.model_dump(mode="json")

    @staticmethod
    def _hydrate(value: Any, options: ChatCompletionOptions) -> LLMResponse | BaseModel:
        """Rebuild the caller-facing object from cached/plain JSON data."""
        if options.response_model is not None:
            return options.response_model.schema_.model_validate(value)
        return LLMResponse.model_validate(value)
