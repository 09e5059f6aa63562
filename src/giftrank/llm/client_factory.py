# src/giftrank/llm/client_factory.py — v1
"""Factory: instantiate LLM clients from provider names.

create_llm_client() builds a single adapter; LLMFactory resolves the
per-component routing (llm/config.py) and caches one client per
provider:model pair.
"""

from __future__ import annotations

import importlib
import logging

from giftrank.config.settings import Settings
from giftrank.llm.base_client import BaseLLMClient
from giftrank.llm.config import resolve_llm

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "openai": "giftrank.llm.adapters.openai_adapter.OpenAIAdapter",
    "anthropic": "giftrank.llm.adapters.anthropic_adapter.AnthropicAdapter",
    "ollama": "giftrank.llm.adapters.ollama_adapter.OllamaAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the correct adapter from provider name.

    Args:
        provider: Provider identifier (openai, anthropic, ollama).
        model: Model name (e.g. gpt-4o-mini).
        settings: Application settings (for API keys).
        **kwargs: Additional provider-specific arguments.

    Returns:
        Configured BaseLLMClient instance.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model

    if settings is not None:
        if provider == "openai":
            init_kwargs.setdefault("api_key", settings.openai_api_key)
        elif provider == "anthropic":
            init_kwargs.setdefault("api_key", settings.anthropic_api_key)
        elif provider == "ollama":
            init_kwargs.setdefault("host", settings.ollama_base_url)

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseLLMClient.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s → %s", name, class_path)


class LLMFactory:
    """Create and cache LLM clients per component.

    Clients are cached by (provider, model) key so components sharing
    the same assignment reuse a single client instance.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._clients: dict[str, BaseLLMClient] = {}

    def get_client(self, component: str) -> BaseLLMClient:
        """Get or create the LLM client routed to a component."""
        assignment = resolve_llm(component, self._settings)
        cache_key = assignment.key

        if cache_key not in self._clients:
            self._clients[cache_key] = create_llm_client(
                assignment.provider.lower(), assignment.model, self._settings,
            )
            logger.info(
                "Created LLM client for '%s': %s (source: %s)",
                component, cache_key, assignment.source,
            )
        return self._clients[cache_key]

    def __call__(self, component: str) -> BaseLLMClient:
        return self.get_client(component)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
