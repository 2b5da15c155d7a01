# src/llm/models.py — v2
"""LLM request/response types shared by every provider client.

ChatCompletionOptions is what the browser layer sends; LLMResponse mirrors
the chat-completion shape every client normalizes its provider's answer to.
"""

from __future__ import annotations

import base64
import time
import uuid
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["system", "user", "assistant"]


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageUrl(BaseModel):
    url: str


class ImageUrlPart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


ContentPart = Union[TextPart, ImageUrlPart]


class ChatMessage(BaseModel):
    """Single message in a conversation."""

    role: Role
    content: Union[str, list[ContentPart]]


class ChatImage(BaseModel):
    """Screenshot attached to a request."""

    buffer: bytes
    description: str | None = None

    def data_url(self, media_type: str = "image/jpeg") -> str:
        encoded = base64.b64encode(self.buffer).decode("ascii")
        return f"data:{media_type};base64,{encoded}"


class ResponseModel(BaseModel):
    """Structured-output request: a name and the pydantic schema to validate against."""

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    name: str
    schema_: type[BaseModel] = Field(alias="schema")

    def json_schema(self) -> dict[str, Any]:
        return self.schema_.model_json_schema()

    def descriptor(self) -> dict[str, Any]:
        """JSON-safe description used for cache keys and wire payloads."""
        return {"name": self.name, "schema": self.json_schema()}


class ToolDefinition(BaseModel):
    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)


class ChatCompletionOptions(BaseModel):
    """Unified completion request."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    messages: list[ChatMessage]
    temperature: float | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    image: ChatImage | None = None
    response_model: ResponseModel | None = None
    tools: list[ToolDefinition] | None = None
    request_id: str = Field(default_factory=lambda: uuid.uuid4().hex)

    @field_validator("messages")
    @classmethod
    def validate_messages(cls, v: list[ChatMessage]) -> list[ChatMessage]:  # noqa: N805
        if not v:
            raise ValueError("messages must not be empty")
        return v

    def sampling_params(self) -> dict[str, float]:
        """Sampling parameters that were actually set."""
        params = {
            "temperature": self.temperature,
            "top_p": self.top_p,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
        }
        return {k: v for k, v in params.items() if v is not None}

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe dump: image as base64, response model as its JSON schema."""
        payload = self.model_dump(
            mode="json", exclude={"image", "response_model"}, exclude_none=True
        )
        if self.image is not None:
            payload["image"] = {
                "buffer": base64.b64encode(self.image.buffer).decode("ascii"),
                "description": self.image.description,
            }
        if self.response_model is not None:
            payload["response_model"] = self.response_model.descriptor()
        return payload


class FunctionCall(BaseModel):
    name: str
    arguments: str = "{}"


class ToolCall(BaseModel):
    id: str
    type: Literal["function"] = "function"
    function: FunctionCall


class ResponseMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: str = "assistant"
    content: str | None = None
    tool_calls: list[ToolCall] | None = None


class Choice(BaseModel):
    model_config = ConfigDict(extra="allow")

    index: int = 0
    message: ResponseMessage
    finish_reason: str | None = None


class Usage(BaseModel):
    model_config = ConfigDict(extra="allow")

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    """Normalized chat-completion response from any provider."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    object: str = "chat.completion"
    created: int = Field(default_factory=lambda: int(time.time()))
    model: str = ""
    choices: list[Choice] = Field(default_factory=list)
    usage: Usage | None = None

    @property
    def content(self) -> str | None:
        """Text of the first choice, if any."""
        if not self.choices:
            return None
        return self.choices[0].message.content
