"""chatstream -- streaming LLM response normalization for Gemini and OpenAI."""

__version__ = "0.1.0"
