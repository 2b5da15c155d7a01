# src/llm/adapters/openai_adapter.py — v3
"""OpenAI chat-completions client.

Uses the official openai SDK. Structured output goes through a
``json_schema`` response_format; reasoning models (o1/o3) take the schema
as an instruction instead, since they reject system messages and
sampling parameters.
"""

from __future__ import annotations

import json
from typing import Any, ClassVar

import openai

from pagepilot.llm.base_client import CachingLLMClient
from pagepilot.llm.config import is_reasoning_model
from pagepilot.llm.models import ChatCompletionOptions, ChatMessage, LLMResponse
from pagepilot.llm.options import OpenAIClientOptions
from pagepilot.llm.structured import response_format_for


class OpenAIClient(CachingLLMClient):
    """OpenAI GPT / o-series client."""

    type: ClassVar[str] = "openai"
    options_model = OpenAIClientOptions
    transport_errors = (openai.APIError,)

    def __init__(self, *args: Any, client: Any = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.__client = client

    @property
    def _client(self) -> Any:
        """Lazy-init AsyncOpenAI (only on first API call)."""
        if self.__client is None:
            opts: OpenAIClientOptions = self.client_options  # type: ignore[assignment]
            sdk_kwargs: dict[str, Any] = {
                "api_key": opts.api_key,
                "organization": opts.organization,
                "base_url": opts.base_url,
                "max_retries": opts.max_retries or 0,
            }
            # An explicit None disables the SDK timeout entirely.
            if opts.timeout is not None:
                sdk_kwargs["timeout"] = opts.timeout
            self.__client = openai.AsyncOpenAI(**sdk_kwargs)
        return self.__client

    async def _send(
        self, messages: list[ChatMessage], options: ChatCompletionOptions
    ) -> LLMResponse:
        reasoning = is_reasoning_model(self.model_name)
        wire_messages = [self._to_api_message(m, reasoning) for m in messages]

        kwargs: dict[str, Any] = {"model": self.model_name, "messages": wire_messages}
        if not reasoning:
            kwargs.update(options.sampling_params())

        if options.response_model is not None:
            if reasoning:
                wire_messages.append({
                    "role": "user",
                    "content": (
                        "Respond with a single JSON object matching this JSON schema, "
                        "and nothing else:\n"
                        + json.dumps(options.response_model.json_schema())
                    ),
                })
            else:
                kwargs["response_format"] = response_format_for(options.response_model)

        if options.tools:
            kwargs["tools"] = [
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

        resp = await self._client.chat.completions.create(**kwargs)
        return LLMResponse.model_validate(resp.model_dump())

    @staticmethod
    def _to_api_message(m: ChatMessage, reasoning: bool) -> dict[str, Any]:
        data = m.model_dump(mode="json", exclude_none=True)
        if reasoning and m.role == "system":
            data["role"] = "user"
        return data
