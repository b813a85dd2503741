"""Tests for chatstream.llm.wire."""

from __future__ import annotations

import json

from chatstream.llm.types import FilePart, ImagePart, Message, ModelProvider, TextPart, ToolCallPart
from chatstream.llm.wire import answer_role, to_gemini_content, to_openai_input, to_provider_dicts


class TestGemini:

    def test_text_message(self):
        assert to_gemini_content(Message.text("user", "hi")) == {
            "role": "user",
            "parts": [{"text": "hi"}],
        }

    def test_assistant_becomes_model(self):
        assert to_gemini_content(Message.text("assistant", "a"))["role"] == "model"

    def test_image_and_file(self):
        msg = Message(role="user", parts=(
            TextPart("see"),
            ImagePart("aW1n", "image/jpeg"),
            FilePart("cGRm", "application/pdf", "a.pdf"),
        ))
        parts = to_gemini_content(msg)["parts"]
        assert parts[1] == {"inline_data": {"mime_type": "image/jpeg", "data": "aW1n"}}
        assert parts[2] == {"inline_data": {"mime_type": "application/pdf", "data": "cGRm"}}

    def test_function_call(self):
        msg = Message(role="model", parts=(ToolCallPart(name="lookup", arguments={"q": "x"}, id="c1"),))
        assert to_gemini_content(msg)["parts"] == [
            {"functionCall": {"name": "lookup", "args": {"q": "x"}, "id": "c1"}},
        ]


class TestOpenAI:

    def test_single_text_is_plain_string(self):
        assert to_openai_input(Message.text("user", "hi")) == [{"role": "user", "content": "hi"}]

    def test_model_becomes_assistant(self):
        assert to_openai_input(Message.text("model", "a"))[0]["role"] == "assistant"

    def test_mixed_user_content(self):
        msg = Message(role="user", parts=(
            TextPart("see"),
            ImagePart("aW1n"),
            FilePart("cGRm", "application/pdf", "a.pdf"),
        ))
        (item,) = to_openai_input(msg)
        assert item["content"] == [
            {"type": "input_text", "text": "see"},
            {"type": "input_image", "image_url": "data:image/png;base64,aW1n"},
            {"type": "input_file", "filename": "a.pdf", "file_data": "data:application/pdf;base64,cGRm"},
        ]

    def test_tool_call_becomes_separate_item(self):
        msg = Message(role="model", parts=(
            TextPart("Checking"),
            ToolCallPart(name="lookup", arguments={"q": "x"}, id="fc_1", call_id="call_1"),
        ))
        items = to_openai_input(msg)
        assert items[0] == {"role": "assistant", "content": [{"type": "output_text", "text": "Checking"}]}
        assert items[1]["type"] == "function_call"
        assert items[1]["call_id"] == "call_1"
        assert json.loads(items[1]["arguments"]) == {"q": "x"}

    def test_call_id_falls_back_to_id(self):
        msg = Message(role="model", parts=(ToolCallPart(name="f", id="fc_1"),))
        (item,) = to_openai_input(msg)
        assert item["call_id"] == "fc_1"


class TestConversation:

    def test_openai_flattens(self):
        messages = [
            Message.text("user", "q"),
            Message(role="model", parts=(TextPart("a"), ToolCallPart(name="f", id="x"))),
        ]
        assert len(to_provider_dicts(messages, ModelProvider.OPENAI)) == 3

    def test_gemini_one_per_message(self):
        messages = [Message.text("user", "q"), Message.text("model", "a")]
        assert len(to_provider_dicts(messages, ModelProvider.GEMINI)) == 2

    def test_answer_role(self):
        assert answer_role(ModelProvider.OPENAI) == "assistant"
        assert answer_role(ModelProvider.GEMINI) == "model"
