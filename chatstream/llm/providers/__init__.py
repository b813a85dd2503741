from chatstream.llm.providers.base import GenerateResult, Provider
from chatstream.llm.providers.gemini import GeminiProvider
from chatstream.llm.providers.openai import OpenAIProvider

__all__ = ["GenerateResult", "Provider", "GeminiProvider", "OpenAIProvider"]
