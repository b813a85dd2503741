"""
Fold streamed text into a conversation's message list.

The module-level functions take the caller's list and return a new one.
:class:`MessageAccumulator` owns its list and folds in place, so a delta costs
the same however long the conversation is.  Only the last message is ever
looked at or replaced; everything before it is sealed.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from chatstream.llm.types import (
    ROLE_MODEL,
    STREAMING_ROLES,
    Message,
    Part,
    TextPart,
    ToolCall,
    ToolCallPart,
)


def _is_open(messages: Sequence[Message]) -> bool:
    return bool(messages) and messages[-1].role in STREAMING_ROLES


def _fold_delta(text: str, messages: Sequence[Message], role: str) -> tuple[Message, bool]:
    """Return the folded message and whether it replaces the last one."""
    if not _is_open(messages):
        return Message(role=role, parts=(TextPart(text),)), False

    last = messages[-1]
    if last.parts and isinstance(last.parts[-1], TextPart):
        tail = TextPart(last.parts[-1].text + text)
        parts = last.parts[:-1] + (tail,)
    else:
        parts = last.parts + (TextPart(text),)
    return replace(last, parts=parts), True


def _fold_tool_call(call: ToolCall, messages: Sequence[Message], role: str) -> tuple[Message, bool]:
    part = ToolCallPart.from_call(call)
    if not _is_open(messages):
        return Message(role=role, parts=(part,)), False
    return replace(messages[-1], parts=messages[-1].parts + (part,)), True


def _message(role: str, content: str | Sequence[Part]) -> Message:
    if isinstance(content, str):
        parts: tuple[Part, ...] = (TextPart(content),)
    else:
        parts = tuple(content)
    return Message(role=role, parts=parts)


def _put(messages: list[Message], message: Message, replaces_last: bool) -> None:
    if replaces_last:
        messages[-1] = message
    else:
        messages.append(message)


def append_delta(
    text: str,
    messages: Sequence[Message],
    role: str = ROLE_MODEL,
) -> list[Message]:
    """
    Append a streamed text fragment.

    The fragment joins the last message when that message belongs to the
    model (``model`` or ``assistant``): it extends the final text part, or
    becomes a new text part after a non-text one such as a tool call.
    Otherwise a new *role* message is started.
    """
    result = list(messages)
    _put(result, *_fold_delta(text, messages, role))
    return result


def append_full_message(
    role: str,
    content: str | Sequence[Part],
    messages: Sequence[Message],
) -> list[Message]:
    """Append a complete message (user input or a non-streamed answer)."""
    return [*messages, _message(role, content)]


def append_tool_call(
    call: ToolCall,
    messages: Sequence[Message],
    role: str = ROLE_MODEL,
) -> list[Message]:
    """Attach a streamed tool call to the open model message, like a delta."""
    result = list(messages)
    _put(result, *_fold_tool_call(call, messages, role))
    return result


class MessageAccumulator:
    """Holds a conversation's messages and applies the fold operations."""

    def __init__(self, messages: Sequence[Message] | None = None) -> None:
        self._messages: list[Message] = list(messages or [])

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def append_delta(self, text: str, role: str = ROLE_MODEL) -> Message:
        """Fold *text* into the open model message and return that message."""
        message, replaces_last = _fold_delta(text, self._messages, role)
        _put(self._messages, message, replaces_last)
        return message

    def append_full_message(self, role: str, content: str | Sequence[Part]) -> Message:
        message = _message(role, content)
        self._messages.append(message)
        return message

    def append_tool_call(self, call: ToolCall, role: str = ROLE_MODEL) -> Message:
        message, replaces_last = _fold_tool_call(call, self._messages, role)
        _put(self._messages, message, replaces_last)
        return message

    def __len__(self) -> int:
        return len(self._messages)
