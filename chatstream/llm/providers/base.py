"""
Abstract base class for LLM providers.

A provider owns the HTTP side of one vendor API: it builds the request body,
opens the streaming connection with ``httpx`` and pushes every raw read into
a :class:`~chatstream.llm.session.StreamSession`.  All payload handling lives
in the session; providers never look inside the bytes.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from contextlib import aclosing
from dataclasses import dataclass
from typing import AsyncIterator

import httpx

from chatstream.llm import parser
from chatstream.llm.session import (
    DoneCallback,
    StreamSession,
    TextCallback,
    ToolCallCallback,
)
from chatstream.llm.types import Message, ModelProvider, StreamEvent, ToolCall

logger = logging.getLogger(__name__)


@dataclass
class GenerateResult:
    """The outcome of a non-streaming request."""

    text: str | None
    tool_call: ToolCall | None
    finish_reason: str | None
    raw: dict


class Provider(ABC):
    """
    Parameters
    ----------
    model:
        Model identifier sent to the API.
    api_key:
        Credential.  An empty key is allowed here; the chat service refuses
        to start a request without one.
    api_base:
        Base URL of the API.
    timeout:
        HTTP request timeout in seconds.
    transport:
        Optional ``httpx`` transport, mainly for tests
        (``httpx.MockTransport``).
    max_carry_over, log_payload_chars:
        Passed through to every :class:`StreamSession`.
    api_key_env:
        Name of the environment variable the key came from, used in error
        messages only.
    """

    default_api_base = ""

    def __init__(
        self,
        model: str,
        api_key: str = "",
        api_base: str | None = None,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
        max_carry_over: int | None = None,
        log_payload_chars: int = 200,
        api_key_env: str = "",
    ) -> None:
        self._model = model
        self._api_key = api_key
        self.api_key_env = api_key_env
        self._api_base = (api_base or self.default_api_base).rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._max_carry_over = max_carry_over
        self._log_payload_chars = log_payload_chars

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def provider(self) -> ModelProvider:
        """Which payload dialect this provider streams."""
        ...

    @property
    def name(self) -> str:
        return self.provider.value

    @property
    def model(self) -> str:
        return self._model

    @property
    def has_credentials(self) -> bool:
        return bool(self._api_key)

    def with_model(self, model: str) -> Provider:
        """Return a copy of this provider that targets *model*."""
        clone = copy.copy(self)
        clone._model = model
        return clone

    # ------------------------------------------------------------------
    # Request building (provider specific)
    # ------------------------------------------------------------------

    @abstractmethod
    def build_body(
        self,
        messages: Sequence[Message],
        tools: list[dict] | None = None,
        system_prompt: str = "",
        stream: bool = True,
        generation_config: dict | None = None,
    ) -> dict:
        ...

    @abstractmethod
    def _endpoint(self, stream: bool) -> tuple[str, dict[str, str]]:
        """Return ``(url, query params)`` for a request."""
        ...

    @abstractmethod
    def _build_headers(self, stream: bool) -> dict[str, str]:
        ...

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def new_session(
        self,
        on_text_delta: TextCallback | None = None,
        on_tool_call: ToolCallCallback | None = None,
        on_done: DoneCallback | None = None,
    ) -> StreamSession:
        return StreamSession(
            self.provider,
            on_text_delta,
            on_tool_call,
            on_done,
            max_carry_over=self._max_carry_over,
            log_payload_chars=self._log_payload_chars,
        )

    async def stream(
        self,
        messages: Sequence[Message],
        *,
        tools: list[dict] | None = None,
        system_prompt: str = "",
        generation_config: dict | None = None,
        on_text_delta: TextCallback | None = None,
        on_tool_call: ToolCallCallback | None = None,
        on_done: DoneCallback | None = None,
    ) -> StreamSession:
        """
        Stream one response through callbacks.

        Transport errors are not raised: the session moves to ``FAILED`` and
        ``on_done`` receives the error.  Anything else (cancellation, an
        exception from a callback) also fails the session before it
        propagates.  Returns the finished session.
        """
        session = self.new_session(on_text_delta, on_tool_call, on_done)
        body = self.build_body(messages, tools, system_prompt, True, generation_config)
        try:
            async for _ in self._drive(session, body):
                pass
        except httpx.HTTPError:
            # Already delivered through on_done by _drive.
            pass
        return session

    async def events(
        self,
        messages: Sequence[Message],
        *,
        tools: list[dict] | None = None,
        system_prompt: str = "",
        generation_config: dict | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Stream one response as :class:`StreamEvent` objects.

        Transport errors propagate to the caller after the session fails.
        """
        session = self.new_session()
        body = self.build_body(messages, tools, system_prompt, True, generation_config)
        async with aclosing(self._drive(session, body)) as driven:
            async for event in driven:
                yield event

    async def _drive(self, session: StreamSession, body: dict) -> AsyncIterator[StreamEvent]:
        url, params = self._endpoint(stream=True)
        headers = self._build_headers(stream=True)
        self._log_request(body, stream=True)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                async with client.stream(
                    "POST", url, params=params, json=body, headers=headers
                ) as response:
                    if response.is_error:
                        # Read the body so the error carries the provider's message.
                        await response.aread()
                        response.raise_for_status()

                    async for raw_bytes in response.aiter_bytes():
                        for event in session.feed(raw_bytes):
                            yield event
            for event in session.flush():
                yield event
        except BaseException as exc:
            # Any exit other than a clean end fails the session.
            session.fail(exc)
            raise
        session.finish()

    # ------------------------------------------------------------------
    # Non-streaming
    # ------------------------------------------------------------------

    async def generate(
        self,
        messages: Sequence[Message],
        *,
        tools: list[dict] | None = None,
        system_prompt: str = "",
        generation_config: dict | None = None,
    ) -> GenerateResult:
        """Single-shot request.  Transport and HTTP errors propagate."""
        body = self.build_body(messages, tools, system_prompt, False, generation_config)
        url, params = self._endpoint(stream=False)
        headers = self._build_headers(stream=False)
        self._log_request(body, stream=False)

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(url, params=params, json=body, headers=headers)
            resp.raise_for_status()
            data = resp.json()

        if not isinstance(data, dict):
            data = {}
        return GenerateResult(
            text=parser.full_text(data, self.provider),
            tool_call=parser.tool_call(data, self.provider),
            finish_reason=parser.finish_reason(data, self.provider) or "stop",
            raw=data,
        )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def _log_request(self, body: dict, stream: bool) -> None:
        logger.info(
            "REQUEST: provider=%s model=%s stream=%s tools=%d messages=%d api_key=%s...",
            self.name,
            self._model,
            stream,
            len(body.get("tools") or []),
            len(body.get("contents") or body.get("input") or []),
            self._api_key[:6] if self._api_key else "(none)",
        )
