"""Core types for the streaming subsystem."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union


ROLE_USER = "user"
ROLE_MODEL = "model"
ROLE_ASSISTANT = "assistant"
ROLE_TOOL = "tool"

# Roles a stream may keep appending to.
STREAMING_ROLES = frozenset({ROLE_MODEL, ROLE_ASSISTANT})


class ModelProvider(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"

    @classmethod
    def detect(cls, model: str) -> ModelProvider:
        """Guess the provider from a model name (``gpt-*`` means OpenAI)."""
        lowered = model.lower()
        if "gpt" in lowered or "openai" in lowered:
            return cls.OPENAI
        return cls.GEMINI


class EventKind(str, Enum):
    TEXT_DELTA = "text_delta"
    TOOL_CALL = "tool_call"
    FINISH_SIGNAL = "finish_signal"
    EMPTY = "empty"


class StreamState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ToolCall:
    """A function call requested by the model."""

    name: str
    arguments: dict = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    call_id: str = ""
    description: str = ""


@dataclass(frozen=True)
class StreamEvent:
    """
    One normalized event extracted from a provider payload.

    *text* is set only for ``TEXT_DELTA``, *tool_call* only for
    ``TOOL_CALL`` and *finish_reason* only for ``FINISH_SIGNAL``.
    """

    kind: EventKind
    text: str | None = None
    tool_call: ToolCall | None = None
    finish_reason: str | None = None

    @classmethod
    def text_delta(cls, text: str) -> StreamEvent:
        return cls(kind=EventKind.TEXT_DELTA, text=text)

    @classmethod
    def tool(cls, call: ToolCall) -> StreamEvent:
        return cls(kind=EventKind.TOOL_CALL, tool_call=call)

    @classmethod
    def finish(cls, reason: str) -> StreamEvent:
        return cls(kind=EventKind.FINISH_SIGNAL, finish_reason=reason)

    @classmethod
    def empty(cls) -> StreamEvent:
        return cls(kind=EventKind.EMPTY)


@dataclass(frozen=True)
class StreamSnapshot:
    """Point-in-time copy of a session's state, for callers that persist it."""

    provider: ModelProvider
    state: StreamState
    accumulated_text: str
    finish_reason: str | None


# ---------------------------------------------------------------------------
# Message parts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class ImagePart:
    base64: str
    mime_type: str = "image/png"


@dataclass(frozen=True)
class FilePart:
    base64: str
    mime_type: str
    file_name: str


@dataclass(frozen=True)
class ToolCallPart:
    name: str
    arguments: dict = field(default_factory=dict)
    description: str = ""
    id: str = ""
    call_id: str = ""

    @classmethod
    def from_call(cls, call: ToolCall) -> ToolCallPart:
        return cls(
            name=call.name,
            arguments=dict(call.arguments),
            description=call.description,
            id=call.id,
            call_id=call.call_id,
        )


Part = Union[TextPart, ImagePart, FilePart, ToolCallPart]

_PART_TYPES: dict[str, type] = {
    "text": TextPart,
    "image": ImagePart,
    "file": FilePart,
    "tool_call": ToolCallPart,
}


def part_to_dict(part: Part) -> dict[str, Any]:
    """Tagged encoding: ``{"type": "text", "text": "..."}`` and so on."""
    for tag, cls in _PART_TYPES.items():
        if isinstance(part, cls):
            d = {"type": tag}
            d.update(part.__dict__)
            return d
    raise TypeError(f"Unsupported message part: {part!r}")


def part_from_dict(data: dict[str, Any]) -> Part:
    data = dict(data)
    tag = data.pop("type", None)
    cls = _PART_TYPES.get(tag)
    if cls is None:
        raise ValueError(f"Unknown message part type: {tag!r}")
    return cls(**data)


# ---------------------------------------------------------------------------
# Message
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Message:
    """
    A single role-tagged message in a conversation.

    Messages are values: accumulation produces a new ``Message`` for the open
    tail of the conversation and leaves every earlier one untouched.
    """

    role: str
    parts: tuple[Part, ...] = ()
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def text(cls, role: str, text: str) -> Message:
        return cls(role=role, parts=(TextPart(text),))

    @classmethod
    def compose(
        cls,
        role: str,
        text: str = "",
        image_base64: str = "",
        image_mime: str = "image/png",
        file_base64: str = "",
        file_mime: str = "",
        file_name: str = "",
    ) -> Message:
        """Build a message from optional text, image and file payloads."""
        parts: list[Part] = []
        if text:
            parts.append(TextPart(text))
        if image_base64:
            parts.append(ImagePart(image_base64, image_mime))
        if file_base64:
            parts.append(FilePart(file_base64, file_mime, file_name))
        return cls(role=role, parts=tuple(parts))

    @property
    def text_content(self) -> str:
        """All text parts joined together."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "timestamp": self.timestamp.isoformat(),
            "parts": [part_to_dict(p) for p in self.parts],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        kwargs: dict[str, Any] = {
            "role": data["role"],
            "parts": tuple(part_from_dict(p) for p in data.get("parts", [])),
        }
        if data.get("id"):
            kwargs["id"] = data["id"]
        ts = data.get("timestamp")
        if isinstance(ts, str):
            kwargs["timestamp"] = datetime.fromisoformat(ts)
        return cls(**kwargs)
