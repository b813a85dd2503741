"""
Per-request stream state machine.

A ``StreamSession`` owns the splitter and the parser for exactly one
request/response cycle::

    IDLE --feed--> STREAMING --finish--> COMPLETED
                             \\--fail----> FAILED

Every transport read goes through :meth:`StreamSession.feed`.  Text deltas
are accumulated and forwarded, tool calls are forwarded as they appear, and
the first finish reason seen is latched for the rest of the session.  The
``on_done`` callback fires exactly once, from :meth:`finish` or :meth:`fail`.

Parsing problems never escape ``feed``: a payload that cannot be decoded is
handed to the recoverer, and if that fails too it is logged and dropped.
"""

from __future__ import annotations

import codecs
import logging
import threading
from typing import Callable, Optional

from chatstream.llm import parser, recovery
from chatstream.llm.sse import Frame, SSEFrameSplitter
from chatstream.llm.types import (
    EventKind,
    ModelProvider,
    StreamEvent,
    StreamSnapshot,
    StreamState,
    ToolCall,
)

logger = logging.getLogger(__name__)

TextCallback = Callable[[str], None]
ToolCallCallback = Callable[[ToolCall], None]
DoneCallback = Callable[[Optional[str], Optional[BaseException]], None]


class StreamSession:
    """
    Assemble one streamed provider response.

    Parameters
    ----------
    provider:
        Which provider's payload shapes to expect.  Fixed for the session.
    on_text_delta:
        Called with each new text fragment (never the accumulated text).
    on_tool_call:
        Called with each tool call, in arrival order.
    on_done:
        Called once with ``(finish_reason, error)`` when the session ends.
    max_carry_over:
        Optional cap on the splitter's carry-over buffer, in characters.
    log_payload_chars:
        How much of a dropped payload to include in the warning.

    Chunk processing is serialised by a lock.  ``on_text_delta`` and
    ``on_tool_call`` run while it is held and must not call ``feed``.
    """

    def __init__(
        self,
        provider: ModelProvider,
        on_text_delta: TextCallback | None = None,
        on_tool_call: ToolCallCallback | None = None,
        on_done: DoneCallback | None = None,
        *,
        max_carry_over: int | None = None,
        log_payload_chars: int = 200,
    ) -> None:
        self._provider = ModelProvider(provider)
        self._on_text_delta = on_text_delta
        self._on_tool_call = on_tool_call
        self._on_done = on_done
        self._log_payload_chars = log_payload_chars

        self._splitter = SSEFrameSplitter(max_carry_over)
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._lock = threading.Lock()

        self._state = StreamState.IDLE
        self._text_parts: list[str] = []
        self._finish_reason: str | None = None

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def provider(self) -> ModelProvider:
        return self._provider

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in (StreamState.COMPLETED, StreamState.FAILED)

    @property
    def accumulated_text(self) -> str:
        """Every text delta seen so far, in arrival order."""
        return "".join(self._text_parts)

    @property
    def finish_reason(self) -> str | None:
        return self._finish_reason

    @property
    def carry_over(self) -> str:
        return self._splitter.carry_over

    def snapshot(self) -> StreamSnapshot:
        return StreamSnapshot(
            provider=self._provider,
            state=self._state,
            accumulated_text=self.accumulated_text,
            finish_reason=self._finish_reason,
        )

    # ------------------------------------------------------------------
    # Transport-facing API
    # ------------------------------------------------------------------

    def feed(self, chunk: bytes | str) -> list[StreamEvent]:
        """
        Process one transport read.

        Returns the events produced by this chunk (``EMPTY`` events are
        left out).  Chunks delivered after the session ended are ignored.
        """
        with self._lock:
            if self.is_terminal:
                logger.debug("Ignoring chunk for %s session", self._state.value)
                return []
            self._state = StreamState.STREAMING

            if isinstance(chunk, bytes):
                text = self._decoder.decode(chunk)
            else:
                text = chunk

            frames = self._splitter.feed(text)
            logger.debug(
                "chunk: %d chars -> %d frames (carry %d)",
                len(text), len(frames), len(self._splitter.carry_over),
            )
            events: list[StreamEvent] = []
            for frame in frames:
                events.extend(self._process(frame))
            return events

    def flush(self) -> list[StreamEvent]:
        """
        Hand a held, never-completed ``data:`` payload to the recoverer.

        Called when the transport has no more bytes; :meth:`finish` does it
        too, so calling this first only matters to callers that want the
        events.
        """
        with self._lock:
            if self.is_terminal:
                return []
            return self._drain()

    def finish(self) -> None:
        """The transport closed normally."""
        with self._lock:
            if self.is_terminal:
                return
            self._drain()
            self._state = StreamState.COMPLETED
            logger.info(
                "%s stream completed: finish_reason=%s chars=%d",
                self._provider.value,
                self._finish_reason,
                sum(len(p) for p in self._text_parts),
            )
            if self._splitter.carry_over:
                logger.debug(
                    "Abandoning %d chars of carry-over at stream end",
                    len(self._splitter.carry_over),
                )
            reason = self._finish_reason
        if self._on_done is not None:
            self._on_done(reason, None)

    def fail(self, error: BaseException) -> None:
        """The transport reported an error; no finish reason is reported."""
        with self._lock:
            if self.is_terminal:
                return
            self._state = StreamState.FAILED
            logger.warning("%s stream failed: %s", self._provider.value, error)
        if self._on_done is not None:
            self._on_done(None, error)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _drain(self) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        for frame in self._splitter.flush():
            events.extend(self._process(frame))
        return events

    def _process(self, frame: Frame) -> list[StreamEvent]:
        if frame.malformed:
            event = recovery.recover_event(frame.raw)
            if event is None:
                logger.warning(
                    "Dropping undecodable payload: %s",
                    frame.raw[: self._log_payload_chars],
                )
                return []
            candidates = [event]
        else:
            candidates = parser.parse_events(frame.obj, self._provider)

        emitted: list[StreamEvent] = []
        for event in candidates:
            if event.kind is EventKind.TEXT_DELTA and event.text:
                self._text_parts.append(event.text)
                emitted.append(event)
                if self._on_text_delta is not None:
                    self._on_text_delta(event.text)
            elif event.kind is EventKind.TOOL_CALL and event.tool_call is not None:
                emitted.append(event)
                if self._on_tool_call is not None:
                    self._on_tool_call(event.tool_call)
            elif event.kind is EventKind.FINISH_SIGNAL and self._finish_reason is None:
                self._finish_reason = event.finish_reason
                emitted.append(event)
        return emitted
