# src/llm/errors.py — v1
"""Exceptions raised by the LLM provider layer.

Transport failures are not wrapped: the SDK or httpx exception that
exhausted the retry budget reaches the caller unchanged.
"""

from __future__ import annotations


class LLMError(Exception):
    """Base exception for provider-layer errors."""


class LLMConfigurationError(LLMError, ValueError):
    """A client was constructed without a required option."""


class UnsupportedModelError(LLMError, ValueError):
    """The model name has no provider mapping and no override applies."""


class UnsupportedProviderError(LLMError, ValueError):
    """The resolved provider has no registered client class."""


class InvalidResponseSchemaError(LLMError):
    """Structured output still failed validation when retries ran out."""

    def __init__(self, message: str = "Invalid response schema", schema_name: str | None = None):
        self.schema_name = schema_name
        super().__init__(message if schema_name is None else f"{message}: {schema_name}")


class UpstreamServiceError(LLMError):
    """The remote proxy answered with a non-success HTTP status."""

    def __init__(self, service: str, status_code: int, body: str = ""):
        self.service = service
        self.status_code = status_code
        self.body = body
        super().__init__(f"{service} service returned {status_code}")


class StructuredOutputError(LLMError):
    """One attempt's structured output failed to parse or validate.

    Retried internally; surfaces to callers only as the ``__cause__`` of
    InvalidResponseSchemaError.
    """

    def __init__(self, message: str, raw: str | None = None):
        self.raw = raw
        super().__init__(message)
