# tests/integration/conftest.py — v1
"""Shared fixtures for pipeline-level tests.

ScriptedLLMClient is a real BaseLLMClient that answers by call type:
rerank calls and rationale calls are told apart by their system prompt.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from giftrank.llm.base_client import BaseLLMClient
from giftrank.llm.models import LLMResponse, Message


class ScriptedLLMClient(BaseLLMClient):
    """In-process backend with per-call-type scripted answers."""

    def __init__(
        self,
        rerank_response: str = "[0, 1, 2]",
        rationale_response: str = '{"title": "Golf lover", "description": "A practical golf gift."}',
        preference_response: str = '{"likes": [], "dislikes": [], "uncertain": []}',
        fail_rerank: bool = False,
        delay_s: float = 0.0,
    ) -> None:
        self.rerank_response = rerank_response
        self.rationale_response = rationale_response
        self.preference_response = preference_response
        self.fail_rerank = fail_rerank
        self.delay_s = delay_s
        self.calls: list[dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "scripted"

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.2,
    ) -> LLMResponse:
        kind = _call_kind(system or "")
        self.calls.append({
            "kind": kind, "prompt": messages[-1].content,
            "max_tokens": max_tokens, "temperature": temperature,
        })
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if kind == "rerank":
            if self.fail_rerank:
                raise ConnectionError("connection refused")
            content = self.rerank_response
        elif kind == "rationale":
            content = self.rationale_response
        else:
            content = self.preference_response
        return LLMResponse(
            content=content, input_tokens=len(messages[-1].content) // 4,
            output_tokens=len(content) // 4, model="scripted-1",
            provider="scripted", latency_ms=1,
        )

    def calls_of(self, kind: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if c["kind"] == kind]


def _call_kind(system: str) -> str:
    if "ranking" in system:
        return "rerank"
    if "analyst" in system:
        return "rationale"
    return "preference"


@pytest.fixture
def scripted_llm() -> ScriptedLLMClient:
    return ScriptedLLMClient()
