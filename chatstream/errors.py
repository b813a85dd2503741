"""Exceptions raised at the chat-service boundary.

Nothing inside the streaming core raises these: malformed payloads degrade to
"no event" and transport failures travel through ``on_done``.  They cover the
checks made before a request is issued.
"""


class ChatStreamError(Exception):
    """Base class for chatstream errors."""


class ChatServiceError(ChatStreamError):
    """A request could not be started."""


class ConversationNotSetError(ChatServiceError):
    def __init__(self) -> None:
        super().__init__("No active conversation. Call set_conversation() first.")


class MissingCredentialError(ChatServiceError):
    def __init__(self, provider: str, env_var: str = "") -> None:
        hint = f" (set {env_var})" if env_var else ""
        super().__init__(f"No API key configured for {provider}{hint}")
        self.provider = provider
        self.env_var = env_var


class ChatBusyError(ChatServiceError):
    def __init__(self) -> None:
        super().__init__("A response is already being generated.")


class UnknownProviderError(ChatStreamError, KeyError):
    """Raised by the router for unregistered provider names."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Unknown provider"
