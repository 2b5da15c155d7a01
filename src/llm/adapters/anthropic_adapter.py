# src/llm/adapters/anthropic_adapter.py — v4
"""Anthropic Claude client.

Uses the official anthropic SDK. Structured output uses a forced tool whose
input schema is the response model, so the payload arrives as tool input
rather than free text. Responses are normalized to the chat-completion
shape (text content, tool_calls, usage).
"""

from __future__ import annotations

import json
import re
from typing import Any, ClassVar

import anthropic

from pagepilot.llm.base_client import CachingLLMClient
from pagepilot.llm.models import (
    ChatCompletionOptions,
    ChatMessage,
    Choice,
    FunctionCall,
    ImageUrlPart,
    LLMResponse,
    ResponseMessage,
    TextPart,
    ToolCall,
    Usage,
)
from pagepilot.llm.options import AnthropicClientOptions

STRUCTURED_TOOL = "structured_output"
DEFAULT_MAX_TOKENS = 1500

_DATA_URL_RE = re.compile(r"^data:(?P<media>[\w/+.-]+);base64,(?P<data>.+)$", re.DOTALL)


class AnthropicClient(CachingLLMClient):
    """Client for Anthropic Claude models."""

    type: ClassVar[str] = "anthropic"
    options_model = AnthropicClientOptions
    transport_errors = (anthropic.APIError,)

    def __init__(
        self,
        *args: Any,
        client: Any = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._max_tokens = max_tokens
        self.__client = client

    @property
    def _client(self) -> Any:
        """Lazy-init AsyncAnthropic (only on first API call)."""
        if self.__client is None:
            opts: AnthropicClientOptions = self.client_options  # type: ignore[assignment]
            sdk_kwargs: dict[str, Any] = {
                "api_key": opts.api_key,
                "base_url": opts.base_url,
                "max_retries": opts.max_retries or 0,
            }
            # An explicit None disables the SDK timeout entirely.
            if opts.timeout is not None:
                sdk_kwargs["timeout"] = opts.timeout
            self.__client = anthropic.AsyncAnthropic(**sdk_kwargs)
        return self.__client

    async def _send(
        self, messages: list[ChatMessage], options: ChatCompletionOptions
    ) -> LLMResponse:
        kwargs = self._build_kwargs(messages, options)
        response = await self._client.messages.create(**kwargs)
        return self._to_llm_response(response)

    def _structured_payload(self, response: LLMResponse) -> str | dict[str, Any] | None:
        message = response.choices[0].message if response.choices else None
        if message is not None and message.tool_calls:
            for call in message.tool_calls:
                if call.function.name == STRUCTURED_TOOL:
                    return call.function.arguments
        return response.content

    # --- Internal helpers ---

    def _build_kwargs(
        self, messages: list[ChatMessage], options: ChatCompletionOptions
    ) -> dict[str, Any]:
        system_parts = [_text_of(m) for m in messages if m.role == "system"]
        kwargs: dict[str, Any] = {
            "model": self.model_name,
            "max_tokens": self._max_tokens,
            "messages": [self._to_api_message(m) for m in messages if m.role != "system"],
        }
        system = "\n\n".join(part for part in system_parts if part)
        if system:
            kwargs["system"] = system
        if options.temperature is not None:
            kwargs["temperature"] = options.temperature
        if options.top_p is not None:
            kwargs["top_p"] = options.top_p

        tools: list[dict[str, Any]] = [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.parameters or {"type": "object", "properties": {}},
            }
            for tool in options.tools or []
        ]
        if options.response_model is not None:
            tools.append({
                "name": STRUCTURED_TOOL,
                "description": f"Return {options.response_model.name} matching the schema",
                "input_schema": options.response_model.json_schema(),
            })
            kwargs["tool_choice"] = {"type": "tool", "name": STRUCTURED_TOOL}
        if tools:
            kwargs["tools"] = tools
        return kwargs

    @staticmethod
    def _to_api_message(m: ChatMessage) -> dict[str, Any]:
        if isinstance(m.content, str):
            return {"role": m.role, "content": m.content}

        blocks: list[dict[str, Any]] = []
        for part in m.content:
            if isinstance(part, ImageUrlPart):
                match = _DATA_URL_RE.match(part.image_url.url)
                if match:
                    source = {
                        "type": "base64",
                        "media_type": match.group("media"),
                        "data": match.group("data"),
                    }
                else:
                    source = {"type": "url", "url": part.image_url.url}
                blocks.append({"type": "image", "source": source})
            else:
                blocks.append({"type": "text", "text": part.text})
        return {"role": m.role, "content": blocks}

    @staticmethod
    def _to_llm_response(response: Any) -> LLMResponse:
        """Normalize a Messages API response into the chat-completion shape."""
        texts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in response.content:
            block_type = getattr(block, "type", None)
            if block_type == "text":
                texts.append(block.text)
            elif block_type == "tool_use":
                tool_calls.append(
                    ToolCall(
                        id=block.id,
                        function=FunctionCall(name=block.name, arguments=json.dumps(block.input)),
                    )
                )

        usage = None
        if getattr(response, "usage", None) is not None:
            prompt = response.usage.input_tokens or 0
            completion = response.usage.output_tokens or 0
            usage = Usage(
                prompt_tokens=prompt,
                completion_tokens=completion,
                total_tokens=prompt + completion,
            )

        return LLMResponse(
            id=response.id,
            model=response.model,
            choices=[
                Choice(
                    index=0,
                    message=ResponseMessage(
                        role="assistant",
                        content="".join(texts) or None,
                        tool_calls=tool_calls or None,
                    ),
                    finish_reason=response.stop_reason,
                )
            ],
            usage=usage,
        )


def _text_of(message: ChatMessage) -> str:
    """Plain text of a message; image parts are skipped."""
    if isinstance(message.content, str):
        return message.content
    return "\n".join(
        part.text for part in message.content if isinstance(part, TextPart)
    )
