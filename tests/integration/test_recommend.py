# tests/integration/test_recommend.py — v1
"""End-to-end tests for the recommendation facade with a scripted backend."""

from __future__ import annotations

import pytest

from giftrank.api.facade import extract_preferences, recommend
from giftrank.config.settings import Settings
from giftrank.core.models import PersonaDescriptor, RankingRequest
from giftrank.logging.context import get_context
from giftrank.tracking.call_logger import CallLogger


def _names(recommendation) -> list[str]:
    return [c.display_name for c in recommendation.candidates]


class TestRecommend:
    @pytest.mark.asyncio
    async def test_profile_ranking_with_rationales(
        self, scripted_llm, settings, golf_wine_pool, golf_wine_profile, sample_persona,
    ):
        call_logger = CallLogger()
        request = RankingRequest(
            pool=golf_wine_pool, persona=sample_persona, profile=golf_wine_profile, top_n=3,
        )
        rec = await recommend(request, llm=scripted_llm, settings=settings, call_logger=call_logger)

        assert rec.strategy == "llm"
        assert _names(rec) == ["Golf Balls", "Wine Glasses", "Golf Club Cover"]
        assert "Candle Set" not in _names(rec)
        assert [r.id for r in rec.rationales] == [1, 2, 3]
        assert all(r.source == "llm" for r in rec.rationales)
        assert len(scripted_llm.calls_of("rerank")) == 1
        assert len(scripted_llm.calls_of("rationale")) == 3
        assert call_logger.total_calls == 4
        assert rec.request_id and len(rec.request_id) == 12

    @pytest.mark.asyncio
    async def test_rerank_prompt_shows_working_set(
        self, scripted_llm, settings, golf_wine_pool, golf_wine_profile,
    ):
        request = RankingRequest(pool=golf_wine_pool, profile=golf_wine_profile, top_n=2)
        await recommend(request, llm=scripted_llm, settings=settings, with_rationale=False)

        call = scripted_llm.calls_of("rerank")[0]
        assert call["temperature"] == 0.0
        assert call["max_tokens"] == 100
        assert call["prompt"].index("Golf Balls") < call["prompt"].index("Candle Set")
        assert "Return exactly 2 indices" in call["prompt"]

    @pytest.mark.asyncio
    async def test_backend_failure_falls_back(
        self, scripted_llm, settings, golf_wine_pool, golf_wine_profile,
    ):
        scripted_llm.fail_rerank = True
        call_logger = CallLogger()
        request = RankingRequest(pool=golf_wine_pool, profile=golf_wine_profile, top_n=3)
        rec = await recommend(request, llm=scripted_llm, settings=settings, call_logger=call_logger)

        assert rec.strategy == "fallback"
        assert rec.fallback_reason.startswith("BackendUnavailable")
        assert _names(rec) == ["Golf Balls", "Wine Glasses", "Golf Club Cover"]
        assert len(rec.rationales) == 3
        assert call_logger.failed_calls == 1

    @pytest.mark.asyncio
    async def test_garbage_answer_falls_back(self, scripted_llm, settings, large_pool):
        scripted_llm.rerank_response = "I would pick the nicest ones."
        request = RankingRequest(pool=large_pool, top_n=3)
        rec = await recommend(request, llm=scripted_llm, settings=settings, with_rationale=False)

        assert rec.strategy == "fallback"
        assert _names(rec) == ["Gift 0", "Gift 1", "Gift 2"]

    @pytest.mark.asyncio
    async def test_partial_answer_backfilled(self, scripted_llm, settings, large_pool):
        scripted_llm.rerank_response = "[7, 7, 42]"
        request = RankingRequest(pool=large_pool, top_n=3)
        rec = await recommend(request, llm=scripted_llm, settings=settings, with_rationale=False)

        assert rec.strategy == "llm"
        assert _names(rec) == ["Gift 7", "Gift 0", "Gift 1"]

    @pytest.mark.asyncio
    async def test_short_pool_skips_rerank(self, scripted_llm, settings, golf_wine_pool):
        request = RankingRequest(pool=golf_wine_pool[:2], top_n=3)
        rec = await recommend(request, llm=scripted_llm, settings=settings)

        assert rec.strategy == "short_circuit"
        assert scripted_llm.calls_of("rerank") == []
        assert len(rec.rationales) == 2

    @pytest.mark.asyncio
    async def test_memo_coverage_without_profile(self, scripted_llm, settings, golf_wine_pool):
        scripted_llm.rerank_response = "[1, 3, 0]"
        persona = PersonaDescriptor(memo="golf", add_memo="wine")
        request = RankingRequest(pool=golf_wine_pool, persona=persona, top_n=3)
        rec = await recommend(request, llm=scripted_llm, settings=settings, with_rationale=False)

        assert rec.coverage_applied
        assert "Wine Glasses" in _names(rec)
        assert "Golf Balls" in _names(rec)

    @pytest.mark.asyncio
    async def test_strict_dislike_filter(self, scripted_llm, golf_wine_pool, golf_wine_profile):
        settings = Settings(_env_file=None, strict_dislike_filter=True)
        scripted_llm.rerank_response = "[3, 0, 1]"
        request = RankingRequest(pool=golf_wine_pool, profile=golf_wine_profile, top_n=3)
        rec = await recommend(request, llm=scripted_llm, settings=settings, with_rationale=False)

        assert rec.dislike_filtered == 1
        assert "Candle Set" not in _names(rec)
        assert len(rec.candidates) == 3

    @pytest.mark.asyncio
    async def test_context_cleared(self, scripted_llm, settings, large_pool):
        await recommend(RankingRequest(pool=large_pool), llm=scripted_llm, settings=settings)
        assert get_context().request_id is None


class TestExtractPreferences:
    @pytest.mark.asyncio
    async def test_extracts_profile(self, scripted_llm, settings):
        scripted_llm.preference_response = (
            '{"likes": [{"item": "golf", "evidence": ["loves golf"], "weight": 0.9}],'
            ' "dislikes": [{"item": "candle", "evidence": ["hates candles"], "weight": 0.8}],'
            ' "uncertain": []}'
        )
        profile = await extract_preferences("Loves golf, hates candles.", llm=scripted_llm, settings=settings)

        assert profile.likes[0].item == "golf"
        assert profile.dislikes[0].weight == 0.8
        assert len(scripted_llm.calls_of("preference")) == 1
