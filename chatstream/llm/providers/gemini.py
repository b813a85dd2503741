"""
Google Gemini provider (``generativelanguage`` REST API).

Streaming uses ``:streamGenerateContent?alt=sse``; every ``data:`` line then
carries a full ``GenerateContentResponse`` with the next text fragment.
"""

from __future__ import annotations

from collections.abc import Sequence

from chatstream.llm.providers.base import Provider
from chatstream.llm.types import Message, ModelProvider
from chatstream.llm.wire import to_gemini_content


class GeminiProvider(Provider):
    """
    Tool declarations are passed as plain ``{"name", "description",
    "parameters"}`` dicts and wrapped into a single ``functionDeclarations``
    entry.
    """

    default_api_base = "https://generativelanguage.googleapis.com/v1beta"

    @property
    def provider(self) -> ModelProvider:
        return ModelProvider.GEMINI

    def _endpoint(self, stream: bool) -> tuple[str, dict[str, str]]:
        if stream:
            return f"{self._api_base}/models/{self._model}:streamGenerateContent", {"alt": "sse"}
        return f"{self._api_base}/models/{self._model}:generateContent", {}

    def _build_headers(self, stream: bool) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if stream:
            headers["Accept"] = "text/event-stream"
        if self._api_key:
            headers["x-goog-api-key"] = self._api_key
        return headers

    def build_body(
        self,
        messages: Sequence[Message],
        tools: list[dict] | None = None,
        system_prompt: str = "",
        stream: bool = True,
        generation_config: dict | None = None,
    ) -> dict:
        body: dict = {"contents": [to_gemini_content(m) for m in messages]}
        if system_prompt:
            body["system_instruction"] = {"parts": [{"text": system_prompt}]}
        if tools:
            body["tools"] = [{"functionDeclarations": list(tools)}]
        if generation_config:
            body["generationConfig"] = dict(generation_config)
        return body
