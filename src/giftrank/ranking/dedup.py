# src/giftrank/ranking/dedup.py — v1
"""Gift de-duplication by product id and normalised name.

Two candidates are the same gift when they share an id or, failing that,
a trimmed lower-cased name. The first occurrence wins.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from giftrank.core.models import GiftCandidate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Duplicate:
    candidate: GiftCandidate
    reason: str


@dataclass
class DedupResult:
    unique: list[GiftCandidate] = field(default_factory=list)
    duplicates: list[Duplicate] = field(default_factory=list)


class SeenGifts:
    """Running set of gift identities (ids and names) already emitted."""

    def __init__(self, initial: Iterable[GiftCandidate] = ()) -> None:
        self._ids: set[str] = set()
        self._names: set[str] = set()
        for candidate in initial:
            self.add(candidate)

    def duplicate_reason(self, candidate: GiftCandidate) -> str | None:
        """Why ``candidate`` repeats an earlier gift, or None if it is new."""
        if candidate.id and candidate.id in self._ids:
            return f"duplicate id: {candidate.id}"
        name = candidate.normalized_name
        if name and name in self._names:
            return f"duplicate name: {name}"
        return None

    def __contains__(self, candidate: GiftCandidate) -> bool:
        return self.duplicate_reason(candidate) is not None

    def add(self, candidate: GiftCandidate) -> None:
        if candidate.id:
            self._ids.add(candidate.id)
        if candidate.normalized_name:
            self._names.add(candidate.normalized_name)


def remove_duplicates(candidates: Iterable[GiftCandidate]) -> DedupResult:
    """Split candidates into first occurrences and repeated gifts."""
    seen = SeenGifts()
    result = DedupResult()
    for candidate in candidates:
        reason = seen.duplicate_reason(candidate)
        if reason is not None:
            result.duplicates.append(Duplicate(candidate=candidate, reason=reason))
            continue
        seen.add(candidate)
        result.unique.append(candidate)

    if result.duplicates:
        logger.info(
            "Removed %d duplicate gift(s)", len(result.duplicates),
            extra={"data": {"reasons": [d.reason for d in result.duplicates]}},
        )
    return result
