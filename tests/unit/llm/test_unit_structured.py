# tests/unit/llm/test_unit_structured.py — v2
"""Tests for llm/structured.py — parsing, validation and screenshot messages."""

from __future__ import annotations

import pytest

from pagepilot.llm.errors import StructuredOutputError
from pagepilot.llm.models import ChatMessage, ImageUrlPart, ResponseModel, TextPart
from pagepilot.llm.structured import (
    append_image_message,
    parse_structured,
    response_format_for,
)


class TestResponseFormat:
    def test_json_schema_format(self, click_action):
        fmt = response_format_for(ResponseModel(name="Click", schema=click_action))
        assert fmt["type"] == "json_schema"
        assert fmt["json_schema"]["name"] == "Click"
        assert fmt["json_schema"]["schema"]["required"] == ["selector", "reason"]


class TestParseStructured:
    def test_valid_json(self, click_action):
        parsed = parse_structured('{"selector": "#login", "reason": "it logs in"}', click_action)
        assert parsed.selector == "#login"

    def test_fenced_json(self, click_action):
        text = '```json\n{"selector": "#a", "reason": "r"}\n```'
        assert parse_structured(text, click_action).selector == "#a"

    def test_dict_payload(self, click_action):
        assert parse_structured({"selector": "#b", "reason": "r"}, click_action).selector == "#b"

    def test_none_payload(self, click_action):
        with pytest.raises(StructuredOutputError, match="no structured payload"):
            parse_structured(None, click_action)

    def test_malformed_json(self, click_action):
        with pytest.raises(StructuredOutputError, match="not valid JSON") as exc_info:
            parse_structured("{selector: ", click_action)
        assert exc_info.value.raw == "{selector: "

    def test_schema_mismatch(self, click_action):
        with pytest.raises(StructuredOutputError, match="does not match schema ClickAction"):
            parse_structured('{"selector": "#a"}', click_action)


class TestAppendImageMessage:
    def test_no_image_returns_copy(self):
        messages = [ChatMessage(role="user", content="hi")]
        result = append_image_message(messages, None)
        assert result == messages
        assert result[0] is not messages[0]

    def test_image_then_description(self, sample_image):
        messages = [ChatMessage(role="user", content="hi")]
        result = append_image_message(messages, sample_image)

        assert len(messages) == 1
        assert len(result) == 2
        appended = result[-1]
        assert appended.role == "user"
        assert isinstance(appended.content[0], ImageUrlPart)
        assert appended.content[0].image_url.url.startswith("data:image/jpeg;base64,")
        assert appended.content[1] == TextPart(text="Current viewport")

    def test_image_without_description(self, sample_image):
        image = sample_image.model_copy(update={"description": None})
        result = append_image_message([ChatMessage(role="user", content="hi")], image)
        assert len(result[-1].content) == 1
