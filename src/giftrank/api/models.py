# src/giftrank/api/models.py — v1
"""API-level models: Recommendation and the GiftView presentation shape."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from giftrank.core.models import GiftCandidate, Rationale

# Catalogue prices are stored in units of 10,000 won.
PRICE_WON_MULTIPLIER = 10_000


class GiftView(BaseModel):
    """Flat gift record returned to clients."""

    id: str | None = None
    name: str = ""
    price: str | float = ""
    image: str = ""
    url: str = ""
    category: str = ""
    brand: str = ""
    source: str = "unknown"


class Recommendation(BaseModel):
    """Return value of facade.recommend()."""

    candidates: list[GiftCandidate] = Field(default_factory=list)
    rationales: list[Rationale] = Field(default_factory=list)
    strategy: Literal["short_circuit", "llm", "fallback"]
    fallback_reason: str | None = None
    coverage_applied: bool = False
    dislike_filtered: int = 0
    request_id: str | None = None

    @property
    def gifts(self) -> list[GiftView]:
        return to_gift_views(self.candidates)


def convert_price_to_won(price: str | float | None) -> float | None:
    """Catalogue price (x10,000 won units) to won. Unparseable or empty gives None."""
    if price is None or price == "":
        return None
    try:
        value = float(price)
    except (TypeError, ValueError):
        return None
    if value == 0:
        return None
    return value * PRICE_WON_MULTIPLIER


def to_gift_views(candidates: list[GiftCandidate]) -> list[GiftView]:
    """Normalise candidates into the presentation shape."""
    views = []
    for c in candidates:
        meta = c.metadata
        views.append(
            GiftView(
                id=c.id,
                name=c.display_name,
                price=meta.price if meta.price is not None else "",
                image=meta.image,
                url=meta.url,
                category=meta.category,
                brand=meta.brand,
                source=c.source or "unknown",
            )
        )
    return views
