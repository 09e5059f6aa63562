# tests/unit/rationale/test_generator.py — v1
"""Tests for rationale/generator.py: per-gift rationales with fallback."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from giftrank.config.settings import Settings
from giftrank.core.models import GiftCandidate, GiftMetadata, PersonaDescriptor
from giftrank.llm.models import LLMResponse
from giftrank.rationale.generator import RationaleGenerator, fallback_rationale


def _response(content: str) -> LLMResponse:
    return LLMResponse(
        content=content, input_tokens=200, output_tokens=30,
        model="gpt-4o-mini", provider="openai", latency_ms=20,
    )


def _llm(*contents: str) -> AsyncMock:
    client = AsyncMock()
    client.complete = AsyncMock(side_effect=[_response(c) for c in contents])
    client.provider_name = "openai"
    return client


@pytest.fixture
def golf_balls() -> GiftCandidate:
    return GiftCandidate(
        id="g2",
        metadata=GiftMetadata(name="Golf Balls", category="Sports > Golf > Balls"),
        document="Premium tour golf balls with a soft feel.",
    )


@pytest.fixture
def persona() -> PersonaDescriptor:
    return PersonaDescriptor(rank="Director", memo="golf")


class TestFallbackRationale:
    def test_category_head_as_title(self, golf_balls, persona):
        r = fallback_rationale(golf_balls, persona, 2)
        assert r.id == 2
        assert r.title == "Sports"
        assert r.source == "fallback"
        assert "Golf Balls" in r.description
        assert "Director, golf" in r.description

    def test_no_category(self):
        gift = GiftCandidate(metadata=GiftMetadata(name="Pen"))
        r = fallback_rationale(gift, None, 1)
        assert r.title == "Recommended gift"
        assert "Pen" in r.description


class TestGenerate:
    @pytest.mark.asyncio
    async def test_llm_rationale(self, golf_balls, persona, settings):
        llm = _llm('{"title": "Golf lover", "description": "Soft-feel balls for every round."}')
        r = await RationaleGenerator(llm, settings).generate(golf_balls, persona, 1)
        assert r.source == "llm"
        assert r.title == "Golf lover"
        kwargs = llm.complete.call_args.kwargs
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == 200

    @pytest.mark.asyncio
    async def test_prompt_contents(self, golf_balls, persona, settings):
        llm = _llm('{"title": "t", "description": "d"}')
        await RationaleGenerator(llm, settings).generate(golf_balls, persona, 1)
        prompt = llm.complete.call_args.kwargs["messages"][0].content
        assert "- Name: Golf Balls" in prompt
        assert "Premium tour golf balls" in prompt
        assert '{"title": "...", "description": "..."}' in prompt

    @pytest.mark.asyncio
    async def test_missing_fields_fall_back(self, golf_balls, persona, settings):
        llm = _llm('{"title": "Golf lover"}')
        r = await RationaleGenerator(llm, settings).generate(golf_balls, persona, 1)
        assert r.source == "fallback"
        assert r.title == "Sports"

    @pytest.mark.asyncio
    async def test_array_answer_falls_back(self, golf_balls, persona, settings):
        r = await RationaleGenerator(_llm("[1, 2]"), settings).generate(golf_balls, persona, 1)
        assert r.source == "fallback"

    @pytest.mark.asyncio
    async def test_malformed_falls_back(self, golf_balls, persona, settings):
        r = await RationaleGenerator(_llm("no json here"), settings).generate(golf_balls, persona, 1)
        assert r.source == "fallback"

    @pytest.mark.asyncio
    async def test_backend_error_falls_back(self, golf_balls, persona, settings):
        llm = AsyncMock()
        llm.complete = AsyncMock(side_effect=RuntimeError("503 service unavailable"))
        r = await RationaleGenerator(llm, settings).generate(golf_balls, persona, 3)
        assert r.source == "fallback"
        assert r.id == 3


class TestGenerateAll:
    @pytest.mark.asyncio
    async def test_order_and_positions(self, golf_balls, persona, settings):
        wine = GiftCandidate(id="w", metadata=GiftMetadata(name="Wine", category="Drinks"))
        llm = _llm(
            '{"title": "A", "description": "first"}',
            '{"title": "B", "description": "second"}',
        )
        rationales = await RationaleGenerator(llm, settings).generate_all([golf_balls, wine], persona)
        assert [r.id for r in rationales] == [1, 2]
        assert {r.title for r in rationales} == {"A", "B"}

    @pytest.mark.asyncio
    async def test_per_call_fallback(self, golf_balls, persona, settings):
        wine = GiftCandidate(id="w", metadata=GiftMetadata(name="Wine", category="Drinks"))
        llm = _llm('{"title": "A", "description": "first"}', "broken")
        rationales = await RationaleGenerator(llm, settings).generate_all([golf_balls, wine], persona)
        assert len(rationales) == 2
        assert sorted(r.source for r in rationales) == ["fallback", "llm"]

    @pytest.mark.asyncio
    async def test_per_call_timeout(self, golf_balls, persona):
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)

        llm = AsyncMock()
        llm.complete = AsyncMock(side_effect=slow)
        settings = Settings(_env_file=None, llm_timeout_s=0.01)
        rationales = await RationaleGenerator(llm, settings).generate_all(
            [golf_balls, golf_balls], persona,
        )
        assert [r.source for r in rationales] == ["fallback", "fallback"]

    @pytest.mark.asyncio
    async def test_empty(self, mock_llm_client, settings):
        assert await RationaleGenerator(mock_llm_client, settings).generate_all([]) == []
