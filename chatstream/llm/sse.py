"""
Split raw transport chunks into decoded JSON payloads.

Transport reads have no relation to event boundaries: a read may hold several
``data:`` lines, half of one, or (for providers that answer with bare JSON
instead of Server-Sent Events) a fragment of a JSON array.  The splitter
keeps the undecodable tail of the previous read in a carry-over buffer and
prepends it to the next one, so a payload cut anywhere decodes exactly as if
it had arrived in one piece.

Two input shapes are handled:

* **SSE** -- the input has at least one ``data:`` line.  Each complete data
  line is decoded on its own.  A data line that does not decode is joined with
  the lines that follow it until the value decodes; a new ``data:`` line
  ends the attempt and the fragment is handed over as malformed.  The last
  line, when it is not newline terminated and does not decode yet, is carried
  over.
* **Direct** -- no ``data:`` line at all.  The trimmed input is decoded as a
  whole, then line by line (newline-delimited JSON); whatever is left over is
  carried.

Decoded arrays are expanded into one frame per object.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"

# SSE fields other than ``data`` carry nothing we use.
_FIELD_PREFIXES = ("event:", "id:", "retry:", ":")


@dataclass(frozen=True)
class Frame:
    """
    One payload ready for parsing.

    *obj* is the decoded mapping, or ``None`` when strict decoding failed and
    only the *raw* text is available.
    """

    raw: str
    obj: dict | None = None

    @property
    def malformed(self) -> bool:
        return self.obj is None


def _decode(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return False, None


def _could_be_complete(text: str) -> bool:
    """A JSON object or array can only end with a closing bracket."""
    return text.endswith(("}", "]"))


def _expand(raw: str, value: Any) -> list[Frame]:
    if isinstance(value, dict):
        return [Frame(raw, value)]
    if isinstance(value, list):
        return [Frame(raw, item) for item in value if isinstance(item, dict)]
    return []


class SSEFrameSplitter:
    """
    Stateful splitter scoped to a single stream.

    Parameters
    ----------
    max_carry_over:
        Upper bound on the carry-over buffer, in characters.  ``None`` or
        ``0`` means unbounded.  A buffer that outgrows the bound is discarded.
    """

    def __init__(self, max_carry_over: int | None = None) -> None:
        self._carry = ""
        self._held: str | None = None
        self._max_carry_over = max_carry_over or None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def carry_over(self) -> str:
        """Text held back from earlier chunks, waiting to be completed."""
        return self._carry

    def reset(self) -> None:
        self._carry = ""
        self._held = None

    def flush(self) -> list[Frame]:
        """
        End of stream: hand over a held ``data:`` payload that never decoded.

        Only a complete ``data:`` line (with any continuation lines) is
        returned, as a malformed frame.  An unterminated tail is left in the
        carry-over buffer to be abandoned.
        """
        if self._held is None:
            return []
        frame = Frame(self._held)
        self.reset()
        return [frame]

    def feed(self, chunk: str) -> list[Frame]:
        """Consume *chunk* and return every payload it completes."""
        text = self._carry + chunk
        self._carry = ""
        self._held = None
        if not text.strip():
            return []

        lines = text.split("\n")
        if any(line.strip().startswith(DATA_PREFIX) for line in lines):
            frames = self._split_sse(text, lines)
        else:
            frames = self._split_direct(text, lines)

        if self._max_carry_over is not None and len(self._carry) > self._max_carry_over:
            logger.warning(
                "Discarding carry-over buffer of %d chars (limit %d): %s",
                len(self._carry),
                self._max_carry_over,
                self._carry[:200],
            )
            self._carry = ""
            self._held = None
        return frames

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _split_sse(self, text: str, lines: list[str]) -> list[Frame]:
        frames: list[Frame] = []
        tail_open = not text.endswith("\n")
        last = len(lines) - 1
        # A value cut by a newline: index of its first line and that line's
        # payload.  Following non-field lines are joined onto it.
        pending_start: int | None = None
        pending_head = ""

        for index, line in enumerate(lines):
            stripped = line.strip()
            if not stripped:
                continue

            if stripped.startswith(DATA_PREFIX):
                if pending_start is not None:
                    # A new event started; the dangling fragment can't complete.
                    frames.append(Frame(self._joined(pending_head, lines, pending_start, index)))
                    pending_start = None

                payload = stripped[len(DATA_PREFIX):].strip()
                if payload == DONE_SENTINEL:
                    continue
                ok, value = _decode(payload)
                if ok:
                    frames.extend(_expand(payload, value))
                elif index == last and tail_open:
                    self._carry = line
                else:
                    pending_start, pending_head = index, payload
                continue

            if stripped.startswith(_FIELD_PREFIXES):
                continue

            # Continuation of a value the transport cut mid-line.
            if pending_start is None:
                pending_start, pending_head = index, stripped
                candidate = stripped
            else:
                candidate = self._joined(pending_head, lines, pending_start, index + 1)
            if _could_be_complete(candidate):
                ok, value = _decode(candidate)
                if ok:
                    frames.extend(_expand(candidate, value))
                    pending_start = None

        if pending_start is not None:
            self._carry = "\n".join(lines[pending_start:])
            if lines[pending_start].strip().startswith(DATA_PREFIX):
                self._held = self._joined(pending_head, lines, pending_start, len(lines))
        return frames

    def _split_direct(self, text: str, lines: list[str]) -> list[Frame]:
        whole = text.strip()
        ok, value = _decode(whole)
        if ok:
            return _expand(whole, value)

        frames: list[Frame] = []
        start = 0
        for index in range(len(lines)):
            candidate = self._join(lines, start, index + 1).strip()
            if not candidate:
                start = index + 1
                continue
            if not _could_be_complete(candidate):
                continue
            ok, value = _decode(candidate)
            if ok:
                frames.extend(_expand(candidate, value))
                start = index + 1

        remainder = "\n".join(lines[start:])
        if remainder.strip():
            self._carry = remainder
        return frames

    @staticmethod
    def _join(lines: list[str], start: int, stop: int) -> str:
        return "\n".join(lines[start:stop])

    @staticmethod
    def _joined(head: str, lines: list[str], start: int, stop: int) -> str:
        return "\n".join([head, *lines[start + 1:stop]]).strip()
