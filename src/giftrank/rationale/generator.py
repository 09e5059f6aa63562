# src/giftrank/rationale/generator.py — v1
"""Per-gift recommendation rationales.

One backend call per ranked gift, run concurrently. Each call has its own
timeout; a failed or malformed answer degrades to a deterministic
rationale built from the gift's category and name, so generate_all()
always returns one Rationale per candidate, in order.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from giftrank.config.settings import Settings
from giftrank.core.models import GiftCandidate, PersonaDescriptor, Rationale
from giftrank.core.text import is_meaningful, truncate
from giftrank.llm.backend import BackendUnavailable, complete_text
from giftrank.parsing.json_recovery import MalformedOutput, recover

if TYPE_CHECKING:
    from giftrank.llm.base_client import BaseLLMClient
    from giftrank.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

_PROMPT_PATH = Path(__file__).parent.parent / "prompts" / "rationale.txt"
_SYSTEM_PROMPT = "You are a gift recommendation analyst. Always respond with valid JSON only."
_MISSING = "N/A"
DEFAULT_TITLE = "Recommended gift"
COMPONENT = "rationale"


def fallback_rationale(
    candidate: GiftCandidate, persona: PersonaDescriptor | None, position: int,
) -> Rationale:
    """Rationale that needs no backend: category head as title, name + persona as text."""
    category = candidate.metadata.category
    title = category.split(" > ")[0].strip() if category else ""
    name = candidate.display_name or "This gift"
    persona_text = persona.as_text() if persona is not None else ""
    description = f"{name} suits {persona_text}." if persona_text else f"{name} is a fitting choice."
    return Rationale(
        id=position,
        title=title or DEFAULT_TITLE,
        description=description,
        source="fallback",
    )


class RationaleGenerator:
    """Explains why each ranked gift was recommended."""

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

    def _format_prompt(self, candidate: GiftCandidate, persona: PersonaDescriptor) -> str:
        meta = candidate.metadata
        document = truncate(
            candidate.description_text, self._settings.rationale_document_max_length,
        )
        return self._load_prompt().format(
            rank=_or_missing(persona.rank),
            gender=_or_missing(persona.gender),
            memo=_or_missing(persona.memo),
            add_memo=_or_missing(persona.add_memo),
            persona=_or_missing(persona.as_text()),
            gift_name=candidate.display_name or _MISSING,
            category=meta.category or _MISSING,
            vibe=meta.vibe or _MISSING,
            utility=meta.utility or _MISSING,
            event=meta.event or _MISSING,
            document=document or _MISSING,
        )

    async def generate(
        self,
        candidate: GiftCandidate,
        persona: PersonaDescriptor | None = None,
        position: int = 1,
    ) -> Rationale:
        """Rationale for one gift; ``position`` is its 1-based rank."""
        persona = persona or PersonaDescriptor()
        prompt = self._format_prompt(candidate, persona)
        try:
            raw = await complete_text(
                self._llm,
                prompt,
                system=_SYSTEM_PROMPT,
                temperature=self._settings.rationale_temperature,
                max_tokens=self._settings.rationale_max_tokens,
                timeout_s=self._settings.llm_timeout_s,
                component=COMPONENT,
                call_logger=self._call_logger,
            )
            parsed = recover(raw)
        except (BackendUnavailable, MalformedOutput) as exc:
            logger.warning(
                "Rationale for '%s' fell back: %s", candidate.display_name, exc,
            )
            return fallback_rationale(candidate, persona, position)

        title = parsed.get("title") if isinstance(parsed, dict) else None
        description = parsed.get("description") if isinstance(parsed, dict) else None
        if not (isinstance(title, str) and title.strip()
                and isinstance(description, str) and description.strip()):
            logger.warning(
                "Rationale for '%s' has no title/description, falling back",
                candidate.display_name,
            )
            return fallback_rationale(candidate, persona, position)

        return Rationale(
            id=position, title=title.strip(), description=description.strip(), source="llm",
        )

    async def generate_all(
        self,
        candidates: list[GiftCandidate],
        persona: PersonaDescriptor | None = None,
    ) -> list[Rationale]:
        """Rationales for every candidate, concurrently, in input order."""
        if not candidates:
            return []
        return list(
            await asyncio.gather(
                *(
                    self.generate(c, persona, position=i)
                    for i, c in enumerate(candidates, start=1)
                )
            )
        )


def _or_missing(text: str) -> str:
    return text.strip() if is_meaningful(text) else _MISSING
