"""
Chat service -- one active conversation, one request at a time.

``ChatService`` ties the router, the providers and the message accumulator
together.  It performs the checks that must happen before a request is
issued (conversation set, credential present, nothing in flight) and raises
:mod:`chatstream.errors` exceptions for them.  Once a request is running,
failures are reported in :class:`ChatResult` instead.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Callable

import httpx

from chatstream.errors import ChatBusyError, ConversationNotSetError, MissingCredentialError
from chatstream.llm.accumulator import MessageAccumulator
from chatstream.llm.providers.base import Provider
from chatstream.llm.router import ProviderRouter
from chatstream.llm.session import ToolCallCallback
from chatstream.llm.types import ROLE_USER, Message, StreamSnapshot, ToolCall
from chatstream.llm.wire import answer_role

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[list[Message]], None]


@dataclass
class ChatResult:
    """What one :meth:`ChatService.run` produced."""

    text: str = ""
    finish_reason: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    error: BaseException | None = None
    provider: str = ""
    model: str = ""
    snapshot: StreamSnapshot | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ChatService:
    """
    Parameters
    ----------
    router:
        Supplies the provider for each request.
    default_model:
        Model used when :meth:`run` is not given one.  ``None`` means the
        router's active provider with its configured model.
    system_prompt:
        Default system prompt.
    """

    def __init__(
        self,
        router: ProviderRouter,
        default_model: str | None = None,
        system_prompt: str = "",
    ) -> None:
        self._router = router
        self._default_model = default_model
        self._system_prompt = system_prompt
        self._conversation: MessageAccumulator | None = None
        self._conversation_id: str | None = None
        self._busy = False

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    def set_conversation(
        self,
        messages: Sequence[Message] | None = None,
        conversation_id: str | None = None,
    ) -> str:
        """Start a new conversation, or resume one from *messages*."""
        self._conversation = MessageAccumulator(messages)
        self._conversation_id = conversation_id or str(uuid.uuid4())
        logger.info(
            "Conversation %s set (%d messages)",
            self._conversation_id,
            len(self._conversation),
        )
        return self._conversation_id

    @property
    def conversation_id(self) -> str | None:
        return self._conversation_id

    @property
    def messages(self) -> list[Message]:
        if self._conversation is None:
            return []
        return self._conversation.messages

    @property
    def is_processing(self) -> bool:
        return self._busy

    def add_user(
        self,
        text: str = "",
        image_base64: str = "",
        image_mime: str = "image/png",
        file_base64: str = "",
        file_mime: str = "",
        file_name: str = "",
    ) -> Message:
        conversation = self._require_conversation()
        composed = Message.compose(
            ROLE_USER,
            text=text,
            image_base64=image_base64,
            image_mime=image_mime,
            file_base64=file_base64,
            file_mime=file_mime,
            file_name=file_name,
        )
        return conversation.append_full_message(ROLE_USER, composed.parts)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def run(
        self,
        model: str | None = None,
        *,
        streaming: bool = True,
        tools: list[dict] | None = None,
        system_prompt: str | None = None,
        generation_config: dict | None = None,
        on_update: UpdateCallback | None = None,
        on_tool_call: ToolCallCallback | None = None,
    ) -> ChatResult:
        """
        Send the conversation and fold the answer back into it.

        Raises ``ConversationNotSetError``, ``MissingCredentialError`` or
        ``ChatBusyError`` before anything is sent.  Transport failures are
        returned in ``ChatResult.error``; text already folded in stays.
        """
        conversation = self._require_conversation()
        if self._busy:
            raise ChatBusyError()
        provider = self._router.for_model(model or self._default_model)
        if not provider.has_credentials:
            raise MissingCredentialError(provider.name, provider.api_key_env)

        self._busy = True
        try:
            history = conversation.messages
            prompt = self._system_prompt if system_prompt is None else system_prompt
            if streaming:
                return await self._run_streaming(
                    provider, conversation, history, tools, prompt,
                    generation_config, on_update, on_tool_call,
                )
            return await self._run_single(
                provider, conversation, history, tools, prompt,
                generation_config, on_update, on_tool_call,
            )
        finally:
            self._busy = False

    async def _run_streaming(
        self,
        provider: Provider,
        conversation: MessageAccumulator,
        history: list[Message],
        tools: list[dict] | None,
        system_prompt: str,
        generation_config: dict | None,
        on_update: UpdateCallback | None,
        on_tool_call: ToolCallCallback | None,
    ) -> ChatResult:
        role = answer_role(provider.provider)
        result = ChatResult(provider=provider.name, model=provider.model)

        def handle_text(text: str) -> None:
            conversation.append_delta(text, role)
            if on_update is not None:
                on_update(conversation.messages)

        def handle_tool(call: ToolCall) -> None:
            result.tool_calls.append(call)
            conversation.append_tool_call(call, role)
            if on_tool_call is not None:
                on_tool_call(call)
            if on_update is not None:
                on_update(conversation.messages)

        def handle_done(reason: str | None, error: BaseException | None) -> None:
            result.finish_reason = reason
            result.error = error

        session = await provider.stream(
            history,
            tools=tools,
            system_prompt=system_prompt,
            generation_config=generation_config,
            on_text_delta=handle_text,
            on_tool_call=handle_tool,
            on_done=handle_done,
        )
        result.text = session.accumulated_text
        result.snapshot = session.snapshot()
        if result.error is not None:
            logger.warning("Chat request to %s failed: %s", provider.name, result.error)
        return result

    async def _run_single(
        self,
        provider: Provider,
        conversation: MessageAccumulator,
        history: list[Message],
        tools: list[dict] | None,
        system_prompt: str,
        generation_config: dict | None,
        on_update: UpdateCallback | None,
        on_tool_call: ToolCallCallback | None,
    ) -> ChatResult:
        role = answer_role(provider.provider)
        result = ChatResult(provider=provider.name, model=provider.model)
        try:
            generated = await provider.generate(
                history,
                tools=tools,
                system_prompt=system_prompt,
                generation_config=generation_config,
            )
        except httpx.HTTPError as exc:
            logger.warning("Chat request to %s failed: %s", provider.name, exc)
            result.error = exc
            return result

        result.finish_reason = generated.finish_reason
        if generated.text:
            result.text = generated.text
            conversation.append_full_message(role, generated.text)
        if generated.tool_call is not None:
            result.tool_calls.append(generated.tool_call)
            conversation.append_tool_call(generated.tool_call, role)
            if on_tool_call is not None:
                on_tool_call(generated.tool_call)
        if on_update is not None:
            on_update(conversation.messages)
        return result

    def _require_conversation(self) -> MessageAccumulator:
        if self._conversation is None:
            raise ConversationNotSetError()
        return self._conversation
