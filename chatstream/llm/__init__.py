"""LLM subsystem -- payload parsing, SSE framing, stream sessions and providers."""

from chatstream.llm.accumulator import MessageAccumulator, append_delta, append_full_message
from chatstream.llm.session import StreamSession
from chatstream.llm.sse import SSEFrameSplitter
from chatstream.llm.types import (
    EventKind,
    Message,
    ModelProvider,
    StreamEvent,
    StreamSnapshot,
    StreamState,
    ToolCall,
)

__all__ = [
    "EventKind",
    "Message",
    "MessageAccumulator",
    "ModelProvider",
    "SSEFrameSplitter",
    "StreamEvent",
    "StreamSession",
    "StreamSnapshot",
    "StreamState",
    "ToolCall",
    "append_delta",
    "append_full_message",
]
