# tests/unit/llm/test_unit_models.py — v2
"""Tests for llm/models.py, llm/options.py and llm/errors.py."""

from __future__ import annotations

import base64

import pytest

from pagepilot.llm.errors import (
    InvalidResponseSchemaError,
    LLMConfigurationError,
    UpstreamServiceError,
)
from pagepilot.llm.models import (
    ChatCompletionOptions,
    ChatImage,
    ChatMessage,
    LLMResponse,
    ResponseModel,
)
from pagepilot.llm.options import (
    BackendClientOptions,
    CodebuffClientOptions,
    OpenAIClientOptions,
    coerce_options,
    has_backend_url,
    normalize_keys,
)


class TestChatCompletionOptions:
    def test_empty_messages_rejected(self):
        with pytest.raises(ValueError, match="messages"):
            ChatCompletionOptions(messages=[])

    def test_request_id_generated(self):
        a = ChatCompletionOptions(messages=[ChatMessage(role="user", content="x")])
        b = ChatCompletionOptions(messages=[ChatMessage(role="user", content="x")])
        assert a.request_id and a.request_id != b.request_id

    def test_sampling_params_only_set_values(self):
        opts = ChatCompletionOptions(
            messages=[ChatMessage(role="user", content="x")],
            temperature=0.0,
            presence_penalty=0.5,
        )
        assert opts.sampling_params() == {"temperature": 0.0, "presence_penalty": 0.5}

    def test_to_payload(self, sample_image, click_action):
        opts = ChatCompletionOptions(
            messages=[ChatMessage(role="user", content="x")],
            image=sample_image,
            response_model=ResponseModel(name="Click", schema=click_action),
            request_id="r1",
        )
        payload = opts.to_payload()
        assert payload["request_id"] == "r1"
        assert base64.b64decode(payload["image"]["buffer"]) == sample_image.buffer
        assert payload["response_model"]["name"] == "Click"
        assert payload["response_model"]["schema"]["title"] == "ClickAction"
        assert "temperature" not in payload


class TestChatImage:
    def test_data_url(self):
        url = ChatImage(buffer=b"abc").data_url()
        assert url == "data:image/jpeg;base64,YWJj"


class TestLLMResponse:
    def test_content(self, make_completion):
        response = LLMResponse.model_validate(make_completion("hello"))
        assert response.content == "hello"
        assert response.usage.total_tokens == 15

    def test_content_without_choices(self):
        assert LLMResponse().content is None

    def test_extra_fields_kept(self, make_completion):
        response = LLMResponse.model_validate(make_completion(system_fingerprint="fp_1"))
        assert response.model_dump()["system_fingerprint"] == "fp_1"


class TestClientOptions:
    def test_normalize_camel_case(self):
        assert normalize_keys({"backendUrl": "u", "apiKey": "k", "other": 1}) == {
            "backend_url": "u", "api_key": "k", "other": 1,
        }

    @pytest.mark.parametrize(
        "options, expected",
        [
            (None, False),
            ({}, False),
            ({"backend_url": ""}, False),
            ({"backendUrl": "https://x"}, True),
            (BackendClientOptions(backend_url="https://x"), True),
            (OpenAIClientOptions(api_key="k"), False),
        ],
    )
    def test_has_backend_url(self, options, expected):
        assert has_backend_url(options) is expected

    def test_backend_url_trailing_slash_stripped(self):
        assert BackendClientOptions(backend_url="https://x/api/").backend_url == "https://x/api"

    def test_coerce_missing_required(self):
        with pytest.raises(LLMConfigurationError, match="backend_url must be provided"):
            coerce_options(BackendClientOptions, {"api_key": "k"}, "BackendLLMClient")

    def test_coerce_empty_required(self):
        with pytest.raises(LLMConfigurationError, match="auth_token"):
            coerce_options(
                CodebuffClientOptions,
                {"backend_url": "https://x", "auth_token": "", "fingerprint_id": "f"},
                "CodebuffClient",
            )

    def test_coerce_ignores_unknown_keys(self):
        opts = coerce_options(OpenAIClientOptions, {"api_key": "k", "bogus": 1}, "OpenAIClient")
        assert opts.api_key == "k"

    def test_coerce_passes_through_instance(self):
        original = OpenAIClientOptions(api_key="k")
        assert coerce_options(OpenAIClientOptions, original, "OpenAIClient") == original

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            coerce_options(BackendClientOptions, None, "BackendLLMClient")


class TestErrors:
    def test_invalid_schema_message(self):
        assert str(InvalidResponseSchemaError()) == "Invalid response schema"
        err = InvalidResponseSchemaError(schema_name="Click")
        assert str(err) == "Invalid response schema: Click"
        assert err.schema_name == "Click"

    def test_upstream_error(self):
        err = UpstreamServiceError("Codebuff", 503, "down")
        assert str(err) == "Codebuff service returned 503"
        assert err.status_code == 503
        assert err.body == "down"
