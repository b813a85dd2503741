"""
OpenAI provider speaking the Responses API (``POST /responses``).

Streamed events arrive as typed SSE payloads such as
``response.output_text.delta`` and ``response.completed``.

Dependencies: ``httpx`` (async HTTP client).  No ``openai`` SDK needed.
"""

from __future__ import annotations

from collections.abc import Sequence

from chatstream.llm.providers.base import Provider
from chatstream.llm.types import Message, ModelProvider
from chatstream.llm.wire import to_provider_dicts


class OpenAIProvider(Provider):
    default_api_base = "https://api.openai.com/v1"

    @property
    def provider(self) -> ModelProvider:
        return ModelProvider.OPENAI

    def _endpoint(self, stream: bool) -> tuple[str, dict[str, str]]:
        return f"{self._api_base}/responses", {}

    def _build_headers(self, stream: bool) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if stream:
            headers["Accept"] = "text/event-stream"
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def build_body(
        self,
        messages: Sequence[Message],
        tools: list[dict] | None = None,
        system_prompt: str = "",
        stream: bool = True,
        generation_config: dict | None = None,
    ) -> dict:
        body: dict = {
            "model": self._model,
            "input": to_provider_dicts(messages, ModelProvider.OPENAI),
            "stream": stream,
        }
        if system_prompt:
            body["instructions"] = system_prompt
        if tools:
            body["tools"] = [{"type": "function", **t} for t in tools]
        if generation_config:
            body.update(generation_config)
        return body
