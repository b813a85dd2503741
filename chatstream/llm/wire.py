"""Encode conversation messages into each provider's request format."""

from __future__ import annotations

import json
from collections.abc import Sequence

from chatstream.llm.types import (
    ROLE_ASSISTANT,
    ROLE_MODEL,
    FilePart,
    ImagePart,
    Message,
    ModelProvider,
    TextPart,
    ToolCallPart,
)


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------


def to_gemini_content(message: Message) -> dict:
    """``{"role": "user"|"model", "parts": [...]}`` for ``contents``."""
    role = ROLE_MODEL if message.role == ROLE_ASSISTANT else message.role
    parts: list[dict] = []
    for part in message.parts:
        if isinstance(part, TextPart):
            parts.append({"text": part.text})
        elif isinstance(part, (ImagePart, FilePart)):
            parts.append({"inline_data": {"mime_type": part.mime_type, "data": part.base64}})
        elif isinstance(part, ToolCallPart):
            call: dict = {"name": part.name, "args": dict(part.arguments)}
            if part.id:
                call["id"] = part.id
            parts.append({"functionCall": call})
    return {"role": role, "parts": parts}


# ---------------------------------------------------------------------------
# OpenAI (Responses API ``input`` items)
# ---------------------------------------------------------------------------


def to_openai_input(message: Message) -> list[dict]:
    """
    Encode one message as Responses ``input`` items.

    A message made of a single text part keeps the plain ``content`` string.
    Tool-call parts become separate ``function_call`` items following the
    message that carried them.
    """
    role = ROLE_ASSISTANT if message.role == ROLE_MODEL else message.role

    if len(message.parts) == 1 and isinstance(message.parts[0], TextPart):
        return [{"role": role, "content": message.parts[0].text}]

    content: list[dict] = []
    calls: list[dict] = []
    for part in message.parts:
        if isinstance(part, TextPart):
            kind = "output_text" if role == ROLE_ASSISTANT else "input_text"
            content.append({"type": kind, "text": part.text})
        elif isinstance(part, ImagePart):
            content.append({
                "type": "input_image",
                "image_url": f"data:{part.mime_type};base64,{part.base64}",
            })
        elif isinstance(part, FilePart):
            content.append({
                "type": "input_file",
                "filename": part.file_name,
                "file_data": f"data:{part.mime_type};base64,{part.base64}",
            })
        elif isinstance(part, ToolCallPart):
            calls.append({
                "type": "function_call",
                "name": part.name,
                "arguments": json.dumps(part.arguments),
                "call_id": part.call_id or part.id,
            })

    items: list[dict] = []
    if content:
        items.append({"role": role, "content": content})
    items.extend(calls)
    return items


def to_provider_dicts(messages: Sequence[Message], provider: ModelProvider) -> list[dict]:
    """Encode a whole conversation for *provider*."""
    if provider is ModelProvider.OPENAI:
        items: list[dict] = []
        for msg in messages:
            items.extend(to_openai_input(msg))
        return items
    return [to_gemini_content(msg) for msg in messages]


def answer_role(provider: ModelProvider) -> str:
    """The role a provider's answers are stored under."""
    return ROLE_ASSISTANT if provider is ModelProvider.OPENAI else ROLE_MODEL
