# src/llm/adapters/backend_adapter.py — v2
"""Generic HTTP backend client.

Relays OpenAI-shaped chat-completion requests to a self-hosted proxy:

  POST {backend_url}/chat/completions -> chat.completion JSON

Non-2xx statuses, network failures and undecodable bodies are all treated
as transport errors and retried by the shared pipeline.
"""

from __future__ import annotations

import json
from typing import Any, ClassVar

import httpx
from pydantic import ValidationError

from pagepilot.llm.base_client import CachingLLMClient
from pagepilot.llm.models import ChatCompletionOptions, ChatMessage, LLMResponse
from pagepilot.llm.options import BackendClientOptions
from pagepilot.llm.structured import response_format_for

DEFAULT_TIMEOUT_SECONDS = 120.0


class BackendLLMClient(CachingLLMClient):
    """Client for an OpenAI-compatible relay."""

    type: ClassVar[str] = "backend"
    options_model = BackendClientOptions
    transport_errors = (httpx.HTTPError, json.JSONDecodeError)

    def __init__(self, *args: Any, http_client: httpx.AsyncClient | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        opts: BackendClientOptions = self.client_options  # type: ignore[assignment]
        self.backend_url = opts.backend_url
        self._timeout = opts.timeout or DEFAULT_TIMEOUT_SECONDS
        self._http_client = http_client

    def build_body(
        self, messages: list[ChatMessage], options: ChatCompletionOptions
    ) -> dict[str, Any]:
        """Request body for ``/chat/completions``."""
        body: dict[str, Any] = {
            "model": self.model_name,
            "messages": [m.model_dump(mode="json", exclude_none=True) for m in messages],
            **options.sampling_params(),
            "stream": False,
        }
        if options.response_model is not None:
            body["response_format"] = response_format_for(options.response_model)
        if options.tools:
            body["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters,
                    },
                }
                for tool in options.tools
            ]
        return body

    async def _send(
        self, messages: list[ChatMessage], options: ChatCompletionOptions
    ) -> LLMResponse:
        url = f"{self.backend_url}/chat/completions"
        body = self.build_body(messages, options)
        headers = {"Content-Type": "application/json"}
        api_key = getattr(self.client_options, "api_key", None)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        if self._http_client is not None:
            response = await self._http_client.post(url, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, json=body, headers=headers)

        response.raise_for_status()
        try:
            return LLMResponse.model_validate(response.json())
        except ValidationError as e:
            raise httpx.DecodingError(
                f"Backend returned a body that is not a chat completion: {e}",
                request=response.request,
            ) from e
