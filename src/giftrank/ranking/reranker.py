# src/giftrank/ranking/reranker.py — v1
"""Gift re-ranking engine.

Pipeline for one request:
  short-circuit -> pre-filter -> rerank call -> index validation
  -> fallback (on any failure) -> de-dup + backfill -> memo coverage
  -> optional dislike filter

rerank() never raises for backend, parse or shape failures: those are
logged and turned into the deterministic fallback (first N of the working
set), so a request always gets an answer.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING, Any

from giftrank.config.settings import Settings
from giftrank.core.models import (
    GiftCandidate,
    PersonaDescriptor,
    PreferenceItem,
    PreferenceProfile,
    RankingResult,
)
from giftrank.core.text import is_meaningful, truncate
from giftrank.llm.backend import BackendUnavailable, complete_text
from giftrank.logging.context import set_stage
from giftrank.parsing.json_recovery import MalformedOutput, recover
from giftrank.preferences.profile import decide_priority
from giftrank.ranking.constraints import enforce_memo_coverage, filter_dislikes, unique_top_n
from giftrank.ranking.prefilter import PrefilterResult, prefilter

if TYPE_CHECKING:
    from giftrank.llm.base_client import BaseLLMClient
    from giftrank.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

_PROMPT_DIR = Path(__file__).parent.parent / "prompts"
_SYSTEM_PROMPT = (
    "You are a gift ranking assistant. Respond only with a JSON array of integers."
)
_MISSING = "N/A"
COMPONENT = "reranker"


class InvalidRankingShape(ValueError):
    """Backend output parsed but is not a usable list of indices."""


def validate_indices(value: Any, working_size: int, top_n: int) -> list[int]:
    """Turn a parsed backend value into valid, unique working-set indices.

    Integers, integral floats and numeric strings are accepted; booleans
    and anything else are skipped. Out-of-range indices are dropped, the
    list is cut to ``top_n`` and repeated indices are removed.

    Raises:
        InvalidRankingShape: If ``value`` is not a non-empty list or no
            valid index survives.
    """
    if not isinstance(value, list):
        raise InvalidRankingShape(f"expected a JSON array, got {type(value).__name__}")
    if not value:
        raise InvalidRankingShape("empty index array")

    in_range = [
        idx for idx in (_coerce_index(v) for v in value)
        if idx is not None and 0 <= idx < working_size
    ]

    indices: list[int] = []
    for idx in in_range[:top_n]:
        if idx not in indices:
            indices.append(idx)

    if not indices:
        raise InvalidRankingShape(f"no valid index in {value!r} for {working_size} candidates")
    if len(indices) < len(value):
        logger.debug("Index list cleaned: %r -> %r", value, indices)
    return indices


def _coerce_index(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return None


class GiftReranker:
    """Re-ranks a retrieved gift pool down to the top N for one persona."""

    def __init__(
        self,
        llm: BaseLLMClient,
        settings: Settings | None = None,
        call_logger: CallLogger | None = None,
    ) -> None:
        self._llm = llm
        self._settings = settings or Settings()
        self._call_logger = call_logger
        self._templates: dict[str, str] = {}

    async def rerank(
        self,
        pool: list[GiftCandidate],
        persona: PersonaDescriptor | None = None,
        profile: PreferenceProfile | None = None,
        top_n: int | None = None,
    ) -> RankingResult:
        """Select and order at most ``top_n`` unique gifts from ``pool``."""
        settings = self._settings
        top_n = top_n or settings.default_top_n
        persona = persona or PersonaDescriptor()

        if len(pool) <= top_n:
            logger.info("Pool of %d <= top_n %d, skipping rerank", len(pool), top_n)
            return RankingResult(candidates=list(pool), strategy="short_circuit")

        set_stage("prefilter")
        pre = prefilter(pool, profile, settings.rerank_working_set_size)

        set_stage("rerank")
        strategy = "llm"
        fallback_reason: str | None = None
        try:
            indices = await self._select(pre, persona, profile, top_n)
            selected = [pool[pre.pool_index(i)] for i in indices]
        except (BackendUnavailable, MalformedOutput, InvalidRankingShape) as exc:
            strategy = "fallback"
            fallback_reason = f"{type(exc).__name__}: {exc}"
            selected = pre.working_set[:top_n]
            logger.warning(
                "Rerank failed, using first %d of working set: %s",
                top_n, fallback_reason,
                extra={"data": {"fallback": [c.identity_key for c in selected]}},
            )

        set_stage("constraints")
        in_working_set = set(pre.index_map)
        fill_order = pre.working_set + [
            c for i, c in enumerate(pool) if i not in in_working_set
        ]
        candidates = unique_top_n(selected, fill_order, top_n)

        coverage_applied = False
        decision = decide_priority(profile, persona)
        logger.debug("Preference priority: %s", decision.reason)
        if not decision.use_profile and decision.has_memo and decision.has_add_memo:
            outcome = enforce_memo_coverage(candidates, pool, persona, top_n)
            candidates = outcome.candidates
            coverage_applied = outcome.applied

        dislike_filtered = 0
        if settings.strict_dislike_filter:
            candidates, dislike_filtered = filter_dislikes(
                candidates, fill_order, profile, top_n,
                min_weight=settings.dislike_filter_min_weight,
            )

        set_stage(None)
        logger.info(
            "Rerank done: strategy=%s, %d candidate(s)", strategy, len(candidates),
            extra={"data": {
                "names": [c.display_name for c in candidates],
                "keys": [c.identity_key for c in candidates],
            }},
        )
        return RankingResult(
            candidates=candidates,
            strategy=strategy,
            fallback_reason=fallback_reason,
            coverage_applied=coverage_applied,
            dislike_filtered=dislike_filtered,
        )

    async def _select(
        self,
        pre: PrefilterResult,
        persona: PersonaDescriptor,
        profile: PreferenceProfile | None,
        top_n: int,
    ) -> list[int]:
        prompt = self.build_prompt(pre.working_set, persona, profile, top_n)
        raw = await complete_text(
            self._llm,
            prompt,
            system=_SYSTEM_PROMPT,
            temperature=self._settings.rerank_temperature,
            max_tokens=self._settings.rerank_max_tokens,
            timeout_s=self._settings.llm_timeout_s,
            component=COMPONENT,
            call_logger=self._call_logger,
        )
        value = recover(raw)
        return validate_indices(value, len(pre.working_set), top_n)

    # --- Prompt construction ---

    def _load_template(self, name: str) -> str:
        if name not in self._templates:
            self._templates[name] = (_PROMPT_DIR / name).read_text(encoding="utf-8")
        return self._templates[name]

    def build_prompt(
        self,
        working_set: list[GiftCandidate],
        persona: PersonaDescriptor,
        profile: PreferenceProfile | None,
        top_n: int,
    ) -> str:
        """Render the rerank prompt for the working set (zero-based indices)."""
        use_profile = profile is not None and not profile.is_empty
        if use_profile:
            rules = self._load_template("rerank_rules_profile.txt").strip()
            focus = (
                "gifts related to Likes come first (higher confidence first); "
                "gifts related to Dislikes are excluded or ranked last; "
                "Uncertain items are hints only."
            )
            profile_section = _format_profile(profile)
        else:
            rules = self._load_template("rerank_rules_memo.txt").strip()
            focus = "gifts related to the memo and the additional memo come first."
            profile_section = ""

        return self._load_template("rerank.txt").format(
            rank=_or_missing(persona.rank),
            gender=_or_missing(persona.gender),
            memo=_or_missing(persona.memo),
            add_memo=_or_missing(persona.add_memo),
            persona=_or_missing(persona.as_text()),
            profile_section=profile_section,
            gift_list=self._format_gifts(working_set),
            preference_focus=focus,
            rules=rules,
            top_n=top_n,
            last_index=len(working_set) - 1,
            count=len(working_set),
        )

    def _format_gifts(self, working_set: list[GiftCandidate]) -> str:
        max_len = self._settings.rerank_description_max_length
        blocks = []
        for idx, gift in enumerate(working_set):
            meta = gift.metadata
            price = meta.price if meta.price not in (None, "") else _MISSING
            blocks.append(
                f"[Gift {idx}]\n"
                f"- Name: {gift.display_name or _MISSING}\n"
                f"- Category: {meta.category or _MISSING}\n"
                f"- Price: {price}\n"
                f"- Event: {meta.event or _MISSING}\n"
                f"- Vibe: {meta.vibe or _MISSING}\n"
                f"- Utility: {meta.utility or _MISSING}\n"
                f"- Description: {truncate(gift.description_text, max_len)}"
            )
        return "\n\n".join(blocks)


def _or_missing(text: str) -> str:
    return text.strip() if is_meaningful(text) else _MISSING


def _format_items(items: list[PreferenceItem]) -> str:
    if not items:
        return "none"
    lines = []
    for n, item in enumerate(items, start=1):
        evidence = ", ".join(item.evidence) or "none"
        lines.append(
            f"{n}. {item.item} (confidence: {item.weight * 100:.0f}%)\n   - evidence: {evidence}"
        )
    return "\n".join(lines)


def _format_profile(profile: PreferenceProfile) -> str:
    return (
        "\n[Preference profile (extracted from memos)]\n"
        f"Likes:\n{_format_items(profile.likes)}\n\n"
        f"Dislikes:\n{_format_items(profile.dislikes)}\n\n"
        f"Uncertain:\n{_format_items(profile.uncertain)}\n"
    )
