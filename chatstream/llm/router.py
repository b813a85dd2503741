"""
Provider router -- holds one provider per vendor and picks one per request.

Requests name a model, not a vendor.  :meth:`ProviderRouter.for_model`
guesses the vendor from the model name and returns the matching provider
retargeted at that model.
"""

from __future__ import annotations

import logging

import httpx

from chatstream.config import ChatstreamConfig, ProviderConfig
from chatstream.errors import UnknownProviderError
from chatstream.llm.providers.base import Provider
from chatstream.llm.providers.gemini import GeminiProvider
from chatstream.llm.providers.openai import OpenAIProvider
from chatstream.llm.types import ModelProvider

logger = logging.getLogger(__name__)


class ProviderRouter:
    """Routes chat requests to a named provider."""

    def __init__(self) -> None:
        self._providers: dict[str, Provider] = {}
        self._active: str | None = None

    @classmethod
    def from_config(
        cls,
        cfg: ChatstreamConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ProviderRouter:
        """Build a router with both vendors registered from *cfg*."""
        router = cls()
        max_carry = cfg.stream.max_carry_over_chars or None
        for provider_cls, section in (
            (GeminiProvider, cfg.gemini),
            (OpenAIProvider, cfg.openai),
        ):
            router.register_provider(
                section.name,
                _build_provider(provider_cls, section, cfg, max_carry, transport),
            )
        target = ModelProvider.detect(cfg.chat.default_model)
        for name, provider in router._providers.items():
            if provider.provider is target:
                router.set_active(name)
                break
        return router

    # ------------------------------------------------------------------
    # Provider management
    # ------------------------------------------------------------------

    def register_provider(self, name: str, provider: Provider) -> None:
        """Register a provider under *name*.  Overwrites any existing entry."""
        self._providers[name] = provider
        if self._active is None:
            self._active = name

    def set_active(self, name: str) -> None:
        """
        Switch the active provider.

        Raises ``UnknownProviderError`` (a ``KeyError``) if *name* has not
        been registered.
        """
        if name not in self._providers:
            raise UnknownProviderError(
                f"Unknown provider {name!r}. "
                f"Registered: {list(self._providers)}"
            )
        self._active = name

    @property
    def active_name(self) -> str | None:
        return self._active

    @property
    def active_provider(self) -> Provider:
        """
        Return the active ``Provider`` instance.

        Raises ``RuntimeError`` if no provider is active.
        """
        if self._active is None or self._active not in self._providers:
            raise RuntimeError("No active LLM provider")
        return self._providers[self._active]

    @property
    def provider_names(self) -> list[str]:
        return list(self._providers)

    def get(self, name: str) -> Provider:
        try:
            return self._providers[name]
        except KeyError:
            raise UnknownProviderError(f"Unknown provider {name!r}") from None

    def for_model(self, model: str | None = None) -> Provider:
        """
        Return the provider that serves *model*.

        With no model the active provider is returned unchanged.  Otherwise
        the first registered provider whose vendor matches
        ``ModelProvider.detect(model)`` is retargeted at *model*.
        """
        if not model:
            return self.active_provider
        target = ModelProvider.detect(model)
        for provider in self._providers.values():
            if provider.provider is target:
                if provider.model == model:
                    return provider
                return provider.with_model(model)
        raise UnknownProviderError(
            f"No provider registered for {target.value} model {model!r}"
        )


def _build_provider(
    provider_cls: type[Provider],
    section: ProviderConfig,
    cfg: ChatstreamConfig,
    max_carry: int | None,
    transport: httpx.AsyncBaseTransport | None,
) -> Provider:
    logger.debug("Registering %s provider (model=%s)", section.name, section.model)
    return provider_cls(
        model=section.model,
        api_key=section.api_key,
        api_base=section.api_base,
        timeout=float(section.timeout_seconds),
        transport=transport,
        max_carry_over=max_carry,
        log_payload_chars=cfg.stream.log_payload_chars,
        api_key_env=section.api_key_env,
    )
