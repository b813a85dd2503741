"""
Best-effort text salvage for payloads that fail strict JSON decoding.

Provider streams occasionally hand us a JSON object that was cut by a network
read.  Instead of a general partial-JSON parser we look for the first
``"text": "<value>"`` pair in the raw string and, if it is complete, treat it
as a normal text delta.  Anything else is dropped by the caller.
"""

from __future__ import annotations

import json
import re

from chatstream.llm import parser
from chatstream.llm.types import EventKind, ModelProvider, StreamEvent

# Quoted ``text`` key, then a complete quoted value (JSON escapes allowed).
_TEXT_FIELD = re.compile(r'"text"\s*:\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)


def recover(payload: str) -> str | None:
    """Return the first complete ``"text"`` value in *payload*, or ``None``."""
    match = _TEXT_FIELD.search(payload)
    if match is None:
        return None
    captured = match.group(1)
    try:
        return json.loads(f'"{captured}"')
    except (json.JSONDecodeError, ValueError):
        return captured


def synthesize(text: str) -> dict:
    """Wrap *text* in the smallest well-formed Gemini chunk."""
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def recover_event(payload: str) -> StreamEvent | None:
    """
    Recovered text as a ``TEXT_DELTA`` event, or ``None``.

    The text goes through the same parser as a well-formed chunk, whichever
    provider the stream belongs to.
    """
    text = recover(payload)
    if text is None:
        return None
    for event in parser.parse_events(synthesize(text), ModelProvider.GEMINI):
        if event.kind is EventKind.TEXT_DELTA:
            return event
    return None
