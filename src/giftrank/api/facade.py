# src/giftrank/api/facade.py — v1
"""Public API facade: single entry point for gift recommendation.

Usage:
    from giftrank.api.facade import recommend
    recommendation = await recommend(RankingRequest(pool=pool, persona=persona))
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from giftrank.api.models import Recommendation
from giftrank.config.settings import Settings
from giftrank.core.models import PreferenceProfile, RankingRequest
from giftrank.llm.client_factory import LLMFactory
from giftrank.logging.context import clear_context, set_request_context, set_stage
from giftrank.preferences.extractor import PreferenceExtractor
from giftrank.ranking.reranker import COMPONENT as RERANKER
from giftrank.ranking.reranker import GiftReranker
from giftrank.rationale.generator import COMPONENT as RATIONALE
from giftrank.rationale.generator import RationaleGenerator

if TYPE_CHECKING:
    from giftrank.llm.base_client import BaseLLMClient
    from giftrank.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)


async def recommend(
    request: RankingRequest,
    llm: BaseLLMClient | None = None,
    settings: Settings | None = None,
    call_logger: CallLogger | None = None,
    llm_factory: LLMFactory | None = None,
    with_rationale: bool = True,
) -> Recommendation:
    """Rank a retrieved pool for one persona and explain each pick.

    Args:
        request: Pool, persona, optional profile and top_n.
        llm: Backend used for every call. When None, clients are resolved
            per component through ``llm_factory`` (built from settings).
        settings: Global settings. Loaded from .env if None.
        call_logger: Optional tracker for every backend call.
        llm_factory: Per-component client factory.
        with_rationale: Generate rationales for the ranked gifts.

    Returns:
        Recommendation with at most ``request.top_n`` unique candidates.
    """
    settings = settings or Settings()
    request_id = uuid.uuid4().hex[:12]
    set_request_context(request_id, request.contact_id)

    try:
        if llm is None:
            llm_factory = llm_factory or LLMFactory(settings)
            rerank_llm = llm_factory.get_client(RERANKER)
            rationale_llm = llm_factory.get_client(RATIONALE) if with_rationale else None
        else:
            rerank_llm = rationale_llm = llm

        logger.info(
            "Recommendation request: pool=%d, top_n=%d, profile=%s",
            len(request.pool), request.top_n, request.profile is not None,
        )

        reranker = GiftReranker(rerank_llm, settings, call_logger)
        ranking = await reranker.rerank(
            request.pool, request.persona, request.profile, request.top_n,
        )

        rationales = []
        if with_rationale and ranking.candidates and rationale_llm is not None:
            set_stage("rationale")
            generator = RationaleGenerator(rationale_llm, settings, call_logger)
            rationales = await generator.generate_all(ranking.candidates, request.persona)

        return Recommendation(
            candidates=ranking.candidates,
            rationales=rationales,
            strategy=ranking.strategy,
            fallback_reason=ranking.fallback_reason,
            coverage_applied=ranking.coverage_applied,
            dislike_filtered=ranking.dislike_filtered,
            request_id=request_id,
        )
    finally:
        clear_context()


async def extract_preferences(
    memo: str,
    llm: BaseLLMClient | None = None,
    settings: Settings | None = None,
    call_logger: CallLogger | None = None,
) -> PreferenceProfile:
    """Extract an explicit preference profile from a memo."""
    settings = settings or Settings()
    if llm is None:
        llm = LLMFactory(settings).get_client("preference_extractor")
    return await PreferenceExtractor(llm, settings, call_logger).extract(memo)
