# src/llm/adapters/codebuff_adapter.py — v2
"""Codebuff remote-proxy client.

The hosted agent owns model choice, structured output and validation; this
client forwards the options nearly verbatim:

  POST {backend_url}/browser
  Authorization: Bearer {auth_token}
  X-Fingerprint-ID: {fingerprint_id}

No local cache and no schema validation. Network failures are retried
within the budget; a non-2xx answer is logged and raised immediately.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

import httpx

from pagepilot.llm.base_client import DEFAULT_RETRIES, BaseLLMClient
from pagepilot.llm.errors import LLMConfigurationError, UpstreamServiceError
from pagepilot.llm.models import ChatCompletionOptions
from pagepilot.llm.options import ClientOptions, CodebuffClientOptions, coerce_options
from pagepilot.llm.retry import RetryConfig, with_retry
from pagepilot.logging.context import set_client_context, set_request_context
from pagepilot.logging.models import LogSink

CODEBUFF_MODEL = "codebuff-latest"
DEFAULT_TIMEOUT_SECONDS = 120.0


class CodebuffClient(BaseLLMClient):
    """Client delegating completions to the Codebuff browser endpoint."""

    type: ClassVar[str] = "codebuff"

    def __init__(
        self,
        client_options: Mapping[str, Any] | ClientOptions | None = None,
        model_name: str = CODEBUFF_MODEL,
        log_sink: LogSink | None = None,
        retry_config: RetryConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        default_retries: int = DEFAULT_RETRIES,
        **_: Any,
    ) -> None:
        super().__init__(model_name, log_sink, default_retries)
        if client_options is None:
            raise LLMConfigurationError("client_options must be provided for CodebuffClient")
        opts = coerce_options(CodebuffClientOptions, client_options, "CodebuffClient")
        self.client_options = opts
        self.backend_url = opts.backend_url
        self._auth_token = opts.auth_token
        self._fingerprint_id = opts.fingerprint_id
        self._timeout = opts.timeout or DEFAULT_TIMEOUT_SECONDS
        self._retry_config = retry_config
        self._http_client = http_client

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._auth_token}",
            "X-Fingerprint-ID": self._fingerprint_id,
        }

    async def create_chat_completion(
        self,
        options: ChatCompletionOptions,
        logger: LogSink | None = None,
        retries: int | None = None,
    ) -> Any:
        if retries is None:
            retries = self.default_retries
        sink = logger or self._log_sink
        set_request_context(options.request_id)
        set_client_context(self.model_name, self.type)
        self._log(sink, "creating chat completion via Codebuff proxy", requestId=options.request_id)

        payload = options.to_payload()

        def on_retry(error: BaseException, left: int) -> None:
            self._log(sink, "retrying Codebuff request", level=0, error=str(error), retriesLeft=left)

        try:
            data = await with_retry(
                lambda: self._post(payload, sink),
                retries=retries,
                retry_on=(httpx.TransportError,),
                config=self._retry_config,
                on_retry=on_retry,
            )
        except httpx.TransportError as e:
            self._log(sink, "Error calling Codebuff service", level=0, error=str(e))
            raise

        self._log(sink, "received response from Codebuff proxy", requestId=options.request_id)
        return data

    async def _post(self, payload: dict[str, Any], sink: LogSink | None) -> Any:
        url = f"{self.backend_url}/browser"
        if self._http_client is not None:
            response = await self._http_client.post(url, json=payload, headers=self._headers())
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, json=payload, headers=self._headers())

        if not response.is_success:
            self._log(
                sink,
                "Error calling Codebuff service",
                level=0,
                status=response.status_code,
                body=response.text[:500],
            )
            raise UpstreamServiceError("Codebuff", response.status_code, response.text[:500])
        return response.json()
