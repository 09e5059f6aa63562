# src/giftrank/preferences/extractor.py — v1
"""Explicit preference extraction from free-text memos.

The backend is asked for likes / dislikes / uncertain items with evidence
quoted from the memo. Its answer is recovered leniently and normalised
item by item; any failure yields an empty profile rather than an error.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from giftrank.config.settings import Settings
from giftrank.core.models import PreferenceProfile
from giftrank.core.text import is_meaningful
from giftrank.llm.backend import BackendUnavailable, complete_text
from giftrank.parsing.json_recovery import MalformedOutput, recover
from giftrank.preferences.profile import PROFILE_KEYS, normalize_items, sort_by_weight

if TYPE_CHECKING:
    from giftrank.llm.base_client import BaseLLMClient
    from giftrank.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

_PROMPT_PATH = Path(__file__).parent.parent / "prompts" / "preference_extraction.txt"
_SYSTEM_PROMPT = (
    "You are a preference extraction system that only extracts explicit "
    "preferences from text. Never infer or guess. Return only valid JSON."
)
COMPONENT = "preference_extractor"


class PreferenceExtractor:
    """Builds a PreferenceProfile from a contact memo."""

    def __init__(
        self,
        llm: BaseLLMClient,
        settings: Settings | None = None,
        call_logger: CallLogger | None = None,
    ) -> None:
        self._llm = llm
        self._settings = settings or Settings()
        self._call_logger = call_logger
        self._prompt_template: str | None = None

    def _load_prompt(self) -> str:
        if self._prompt_template is None:
            self._prompt_template = _PROMPT_PATH.read_text(encoding="utf-8")
        return self._prompt_template

    async def extract(self, memo: str) -> PreferenceProfile:
        if not is_meaningful(memo):
            return PreferenceProfile()

        prompt = self._load_prompt().format(memo=memo.strip())
        try:
            raw = await complete_text(
                self._llm,
                prompt,
                system=_SYSTEM_PROMPT,
                temperature=self._settings.preference_temperature,
                max_tokens=self._settings.preference_max_tokens,
                timeout_s=self._settings.llm_timeout_s,
                component=COMPONENT,
                call_logger=self._call_logger,
            )
            parsed = recover(raw, known_keys=PROFILE_KEYS)
        except (BackendUnavailable, MalformedOutput) as exc:
            logger.warning("Preference extraction failed, returning empty profile: %s", exc)
            return PreferenceProfile()

        if not isinstance(parsed, dict):
            logger.warning(
                "Preference extraction returned %s, expected an object",
                type(parsed).__name__,
            )
            return PreferenceProfile()

        weight = self._settings.default_preference_weight
        profile = PreferenceProfile(
            **{
                key: sort_by_weight(normalize_items(parsed.get(key), weight))
                for key in PROFILE_KEYS
            }
        )
        logger.info(
            "Extracted preferences: likes=%d, dislikes=%d, uncertain=%d",
            len(profile.likes), len(profile.dislikes), len(profile.uncertain),
        )
        return profile
