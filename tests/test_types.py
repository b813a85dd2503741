"""Tests for chatstream.llm.types."""

from __future__ import annotations

import dataclasses

import pytest

from chatstream.llm.types import (
    EventKind,
    FilePart,
    ImagePart,
    Message,
    ModelProvider,
    StreamEvent,
    TextPart,
    ToolCall,
    ToolCallPart,
    part_from_dict,
    part_to_dict,
)


class TestModelProvider:

    @pytest.mark.parametrize("model", ["gpt-4o-mini", "GPT-4.1", "openai/o3"])
    def test_openai_models(self, model):
        assert ModelProvider.detect(model) is ModelProvider.OPENAI

    @pytest.mark.parametrize("model", ["gemini-2.0-flash", "gemini-1.5-pro", "something-else"])
    def test_everything_else_is_gemini(self, model):
        assert ModelProvider.detect(model) is ModelProvider.GEMINI


class TestToolCall:

    def test_ids_are_generated(self):
        a, b = ToolCall(name="f"), ToolCall(name="f")
        assert a.id and b.id and a.id != b.id

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            ToolCall(name="f").name = "g"

    def test_part_from_call(self):
        call = ToolCall(name="f", arguments={"a": 1}, id="i", call_id="c", description="d")
        assert ToolCallPart.from_call(call) == ToolCallPart(
            name="f", arguments={"a": 1}, description="d", id="i", call_id="c",
        )


class TestStreamEvent:

    def test_constructors(self):
        assert StreamEvent.text_delta("x").kind is EventKind.TEXT_DELTA
        assert StreamEvent.finish("STOP").finish_reason == "STOP"
        assert StreamEvent.empty().text is None
        call = ToolCall(name="f")
        assert StreamEvent.tool(call).tool_call is call


class TestMessage:

    def test_compose(self):
        msg = Message.compose("user", text="hi", image_base64="aW1n", file_base64="cGRm",
                              file_mime="application/pdf", file_name="a.pdf")
        assert msg.parts == (
            TextPart("hi"),
            ImagePart("aW1n", "image/png"),
            FilePart("cGRm", "application/pdf", "a.pdf"),
        )

    def test_compose_skips_empty(self):
        assert Message.compose("user", text="only").parts == (TextPart("only"),)

    def test_text_content_skips_other_parts(self):
        msg = Message(role="model", parts=(TextPart("a"), ToolCallPart(name="f"), TextPart("b")))
        assert msg.text_content == "ab"

    def test_dict_round_trip_keeps_identity(self):
        msg = Message(role="model", parts=(TextPart("a"), ToolCallPart(name="f", arguments={"q": 1})))
        back = Message.from_dict(msg.to_dict())
        assert back == msg

    def test_unknown_part_type(self):
        with pytest.raises(ValueError):
            part_from_dict({"type": "video"})

    def test_part_tag(self):
        assert part_to_dict(ImagePart("x"))["type"] == "image"
