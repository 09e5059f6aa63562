# src/giftrank/llm/base_client.py — v1
"""Abstract LLM client interface.

Every generative backend used by the ranking pipeline is reached through
this interface; the pipeline never trusts the shape of what comes back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from giftrank.llm.models import LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.2,
    ) -> LLMResponse:
        """Text completion."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, anthropic, ollama)."""
