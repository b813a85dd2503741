"""
Provider response parsing.

Pure functions that look at one decoded JSON payload and pull out the pieces
the stream cares about: a text delta, a tool call, and a finish reason.

Missing or oddly-typed fields are *not* errors.  Metadata-only chunks,
tool-call-only chunks and usage chunks are part of normal streaming, so
every lookup degrades to ``None`` instead of raising.
"""

from __future__ import annotations

import json
import uuid
from typing import Any

from chatstream.llm.types import ModelProvider, StreamEvent, ToolCall

OPENAI_COMPLETED = "response.completed"
OPENAI_ITEM_DONE = "response.output_item.done"


# ---------------------------------------------------------------------------
# Shape helpers
# ---------------------------------------------------------------------------


def _first_mapping(value: Any) -> dict | None:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return None


def _first_candidate(obj: dict) -> dict | None:
    return _first_mapping(obj.get("candidates"))


def _gemini_parts(obj: dict) -> list[dict]:
    candidate = _first_candidate(obj)
    if candidate is None:
        return []
    content = candidate.get("content")
    if not isinstance(content, dict):
        return []
    parts = content.get("parts")
    if not isinstance(parts, list):
        return []
    return [p for p in parts if isinstance(p, dict)]


def _coerce_arguments(raw: Any) -> dict:
    """Arguments as a mapping: taken as-is, parsed from a JSON string, or ``{}``."""
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw.strip():
        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, ValueError):
            return {}
        if isinstance(parsed, dict):
            return parsed
    return {}


def _make_call(name: str, arguments: Any, call_id: Any, provider_call_id: Any = None) -> ToolCall:
    tc_id = call_id if isinstance(call_id, str) and call_id else str(uuid.uuid4())
    cid = provider_call_id if isinstance(provider_call_id, str) and provider_call_id else tc_id
    return ToolCall(
        name=name,
        arguments=_coerce_arguments(arguments),
        id=tc_id,
        call_id=cid,
    )


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def text_delta(obj: Any, provider: ModelProvider) -> str | None:
    """Return the incremental text carried by *obj*, or ``None``."""
    if not isinstance(obj, dict):
        return None

    if provider is ModelProvider.GEMINI:
        texts = [p["text"] for p in _gemini_parts(obj) if isinstance(p.get("text"), str)]
        if not texts:
            return None
        return "".join(texts)

    # OpenAI: Responses-style top-level ``delta`` first.
    delta = obj.get("delta")
    if isinstance(delta, str):
        event_type = obj.get("type")
        if event_type is None or (
            isinstance(event_type, str) and event_type.endswith("output_text.delta")
        ):
            return delta
        return None

    choice = _first_mapping(obj.get("choices"))
    if choice is not None:
        inner = choice.get("delta")
        if isinstance(inner, str):
            return inner
        if isinstance(inner, dict) and isinstance(inner.get("content"), str):
            return inner["content"]
    return None


def full_text(obj: Any, provider: ModelProvider) -> str | None:
    """
    Extract the complete answer from a non-streaming response body.

    Gemini bodies look like a single stream chunk.  OpenAI Responses bodies
    carry ``output_text`` (SDK convenience) or the ``output[].content[]``
    tree, optionally wrapped in a ``response`` object.
    """
    if not isinstance(obj, dict):
        return None
    if provider is ModelProvider.GEMINI:
        return text_delta(obj, provider)

    body = obj.get("response") if isinstance(obj.get("response"), dict) else obj
    if isinstance(body.get("output_text"), str):
        return body["output_text"]

    texts: list[str] = []
    output = body.get("output")
    if isinstance(output, list):
        for item in output:
            if not isinstance(item, dict) or not isinstance(item.get("content"), list):
                continue
            for content in item["content"]:
                if isinstance(content, dict) and isinstance(content.get("text"), str):
                    texts.append(content["text"])
    if texts:
        return "".join(texts)
    return text_delta(obj, provider)


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------


def tool_call(obj: Any, provider: ModelProvider) -> ToolCall | None:
    """
    Return the first tool call in *obj*, or ``None``.

    Later calls in the same payload are ignored.
    """
    if not isinstance(obj, dict):
        return None

    if provider is ModelProvider.GEMINI:
        for part in _gemini_parts(obj):
            fc = part.get("functionCall")
            if isinstance(fc, dict) and isinstance(fc.get("name"), str):
                return _make_call(fc["name"], fc.get("args"), fc.get("id"))
        return None

    first = _first_mapping(obj.get("tool_calls"))
    if first is not None:
        func = first.get("function")
        if isinstance(func, dict) and isinstance(func.get("name"), str):
            return _make_call(func["name"], func.get("arguments"), first.get("id"))

    if obj.get("type") == OPENAI_ITEM_DONE:
        item = obj.get("item")
        if (
            isinstance(item, dict)
            and item.get("type") == "function_call"
            and isinstance(item.get("name"), str)
        ):
            return _make_call(item["name"], item.get("arguments"), item.get("id"), item.get("call_id"))
    return None


# ---------------------------------------------------------------------------
# Finish reason
# ---------------------------------------------------------------------------


def finish_reason(obj: Any, provider: ModelProvider) -> str | None:
    """Return the terminal marker carried by *obj*, if any."""
    if not isinstance(obj, dict):
        return None

    if provider is ModelProvider.GEMINI:
        candidate = _first_candidate(obj)
        if candidate is None:
            return None
        reason = candidate.get("finishReason")
        return reason if isinstance(reason, str) and reason else None

    if obj.get("type") == OPENAI_COMPLETED:
        return "stop"
    choice = _first_mapping(obj.get("choices"))
    if choice is not None:
        reason = choice.get("finish_reason")
        if isinstance(reason, str) and reason:
            return reason
    return None


# ---------------------------------------------------------------------------
# Normalized events
# ---------------------------------------------------------------------------


def parse_events(obj: Any, provider: ModelProvider) -> list[StreamEvent]:
    """
    Convert one payload into normalized events.

    Order is text delta, tool call, finish signal.  A payload that carries
    none of them yields a single ``EMPTY`` event.
    """
    events: list[StreamEvent] = []

    text = text_delta(obj, provider)
    if text:
        events.append(StreamEvent.text_delta(text))

    call = tool_call(obj, provider)
    if call is not None:
        events.append(StreamEvent.tool(call))

    reason = finish_reason(obj, provider)
    if reason is not None:
        events.append(StreamEvent.finish(reason))

    return events or [StreamEvent.empty()]
