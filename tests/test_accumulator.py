"""Tests for chatstream.llm.accumulator."""

from __future__ import annotations

from chatstream.llm.accumulator import (
    MessageAccumulator,
    append_delta,
    append_full_message,
    append_tool_call,
)
from chatstream.llm.types import ImagePart, Message, TextPart, ToolCall, ToolCallPart


class TestAppendDelta:

    def test_fragments_build_one_message(self):
        fragments = ["Hel", "lo", ", ", "world"]
        messages: list[Message] = []
        for f in fragments:
            messages = append_delta(f, messages)
        assert len(messages) == 1
        assert messages[0].role == "model"
        assert messages[0].parts == (TextPart("Hello, world"),)

    def test_starts_new_message_after_user(self):
        messages = [Message.text("user", "hi")]
        out = append_delta("Hey", messages)
        assert [m.role for m in out] == ["user", "model"]
        assert out[1].text_content == "Hey"

    def test_assistant_role_also_extends(self):
        messages = [Message.text("user", "q"), Message.text("assistant", "A")]
        out = append_delta("B", messages, role="assistant")
        assert len(out) == 2
        assert out[-1].text_content == "AB"
        assert out[-1].role == "assistant"

    def test_input_list_untouched(self):
        messages = [Message.text("model", "A")]
        before = messages[0]
        out = append_delta("B", messages)
        assert messages[0] is before
        assert before.text_content == "A"
        assert out is not messages

    def test_earlier_messages_are_sealed(self):
        first = Message.text("model", "old answer")
        user = Message.text("user", "next")
        out = append_delta("new", [first, user])
        assert out[0] is first
        assert out[1] is user

    def test_message_id_is_kept(self):
        msg = Message.text("model", "A")
        out = append_delta("B", [msg])
        assert out[0].id == msg.id

    def test_text_after_tool_call_gets_new_part(self):
        msg = Message(role="model", parts=(ToolCallPart(name="f"),))
        out = append_delta("after", [msg])
        assert out[0].parts == (ToolCallPart(name="f"), TextPart("after"))

    def test_image_tail_gets_new_text_part(self):
        msg = Message(role="model", parts=(ImagePart("aGk="),))
        out = append_delta("caption", [msg])
        assert out[0].parts[-1] == TextPart("caption")


class TestAppendFullMessage:

    def test_string_content(self):
        out = append_full_message("user", "question", [])
        assert len(out) == 1
        assert out[0].role == "user"
        assert out[0].text_content == "question"

    def test_never_merges(self):
        messages = [Message.text("model", "A")]
        out = append_full_message("model", "B", messages)
        assert [m.text_content for m in out] == ["A", "B"]

    def test_parts_content(self):
        parts = [TextPart("look"), ImagePart("aGk=", "image/jpeg")]
        out = append_full_message("user", parts, [])
        assert out[0].parts == tuple(parts)


class TestAppendToolCall:

    def test_joins_open_model_message(self):
        messages = append_delta("Checking", [Message.text("user", "q")])
        out = append_tool_call(ToolCall(name="lookup", arguments={"q": "x"}, id="c1"), messages)
        assert len(out) == 2
        part = out[-1].parts[-1]
        assert isinstance(part, ToolCallPart)
        assert part.name == "lookup"
        assert part.id == "c1"

    def test_starts_message_after_user(self):
        out = append_tool_call(ToolCall(name="f"), [Message.text("user", "q")])
        assert out[-1].role == "model"
        assert isinstance(out[-1].parts[0], ToolCallPart)


class TestMessageAccumulator:

    def test_streaming_fold(self):
        acc = MessageAccumulator()
        acc.append_full_message("user", "hi")
        acc.append_delta("Hel")
        msg = acc.append_delta("lo")
        assert msg.text_content == "Hello"
        assert len(acc) == 2

    def test_messages_is_a_copy(self):
        acc = MessageAccumulator([Message.text("user", "hi")])
        acc.messages.clear()
        assert len(acc) == 1

    def test_tool_call(self):
        acc = MessageAccumulator()
        msg = acc.append_tool_call(ToolCall(name="f"), role="assistant")
        assert msg.role == "assistant"

    def test_folds_in_place(self):
        acc = MessageAccumulator([Message.text("user", "hi")])
        held = acc._messages
        first = held[0]
        acc.append_delta("A")
        acc.append_delta("B")
        assert acc._messages is held
        assert held[0] is first
        assert [m.text_content for m in held] == ["hi", "AB"]

    def test_earlier_snapshot_is_unaffected(self):
        acc = MessageAccumulator()
        acc.append_delta("A")
        before = acc.messages
        acc.append_delta("B")
        assert before[-1].text_content == "A"
        assert acc.messages[-1].text_content == "AB"
