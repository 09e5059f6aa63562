# src/giftrank/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
Candidates and preference data are frozen: a ranking request only ever
reads them.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from giftrank.core.text import is_meaningful, normalize_name

_FROZEN = ConfigDict(frozen=True, extra="ignore")


# === CANDIDATES ===


class GiftMetadata(BaseModel):
    """Descriptive metadata stored alongside a gift vector."""

    model_config = _FROZEN

    name: str = ""
    product_name: str = ""
    category: str = ""
    price: str | float | None = None
    description: str = ""
    brand: str = ""
    url: str = ""
    image: str = ""
    vibe: str = ""
    utility: str = ""
    event: str = ""
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: object) -> object:  # noqa: N805
        # Vector store metadata only holds scalars, so tags arrive comma-joined.
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        if v is None:
            return []
        return v


class GiftCandidate(BaseModel):
    """A single gift option returned by upstream retrieval."""

    model_config = _FROZEN

    id: str | None = None
    metadata: GiftMetadata = Field(default_factory=GiftMetadata)
    document: str = ""
    distance: float | None = None
    source: str = "vector-search"

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> str | None:  # noqa: N805
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @property
    def similarity(self) -> float | None:
        """1 - distance; None when retrieval gave no distance."""
        if self.distance is None:
            return None
        return 1.0 - self.distance

    @property
    def display_name(self) -> str:
        return self.metadata.name or self.metadata.product_name

    @property
    def description_text(self) -> str:
        return self.document or self.metadata.description

    @property
    def search_text(self) -> str:
        """Lower-cased name, category and description used for keyword matching."""
        return " ".join(
            (self.display_name, self.metadata.category, self.description_text)
        ).lower()

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.display_name)

    @property
    def identity_key(self) -> str:
        """Product id when present, otherwise the normalized name."""
        if self.id:
            return f"id:{self.id}"
        return f"name:{self.normalized_name}"


# === PREFERENCES ===


class PreferenceItem(BaseModel):
    """One weighted, evidence-backed statement about what a contact likes."""

    model_config = _FROZEN

    item: str
    evidence: list[str] = Field(default_factory=list)
    weight: float = Field(default=0.7, ge=0.0, le=1.0)


class PreferenceProfile(BaseModel):
    """Likes / dislikes / uncertain collections, each sorted by descending weight."""

    model_config = _FROZEN

    likes: list[PreferenceItem] = Field(default_factory=list)
    dislikes: list[PreferenceItem] = Field(default_factory=list)
    uncertain: list[PreferenceItem] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.likes or self.dislikes or self.uncertain)

    @property
    def has_likes(self) -> bool:
        return bool(self.likes)


# === PERSONA ===


class PersonaDescriptor(BaseModel):
    """Free-text description of the gift recipient."""

    model_config = _FROZEN

    rank: str = ""
    gender: str = ""
    memo: str = ""
    add_memo: str = ""
    summary: str = ""

    def as_text(self) -> str:
        """Persona string used in prompts and fallback rationales."""
        if is_meaningful(self.summary):
            return self.summary.strip()
        parts = [
            p.strip()
            for p in (self.rank, self.gender, self.memo, self.add_memo)
            if is_meaningful(p)
        ]
        return ", ".join(parts)


# === RANKING ===


class RankingRequest(BaseModel):
    """Input of one re-ranking request."""

    pool: list[GiftCandidate]
    persona: PersonaDescriptor = Field(default_factory=PersonaDescriptor)
    profile: PreferenceProfile | None = None
    top_n: int = Field(default=3, ge=1)
    contact_id: str | None = None


class RankingResult(BaseModel):
    """Final ordered candidates (at most top_n, unique by gift identity)."""

    candidates: list[GiftCandidate] = Field(default_factory=list)
    strategy: Literal["short_circuit", "llm", "fallback"]
    fallback_reason: str | None = None
    coverage_applied: bool = False
    dislike_filtered: int = 0


class Rationale(BaseModel):
    """Short explanation of why a gift was recommended."""

    id: int
    title: str
    description: str
    source: Literal["llm", "fallback"] = "llm"
