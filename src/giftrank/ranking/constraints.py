# src/giftrank/ranking/constraints.py — v1
"""Post-selection constraints applied to a ranked list.

All functions are pure: they take the current selection and return a new
list. The selection is always kept unique by gift identity (see dedup.py)
and never grows beyond top_n.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from giftrank.core.models import GiftCandidate, PersonaDescriptor, PreferenceProfile
from giftrank.ranking.dedup import SeenGifts, remove_duplicates
from giftrank.ranking.keywords import extract_keywords, is_related

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoverageOutcome:
    candidates: list[GiftCandidate]
    applied: bool


def backfill(
    selected: list[GiftCandidate],
    sources: Iterable[GiftCandidate],
    top_n: int,
    reject: Callable[[GiftCandidate], bool] | None = None,
) -> list[GiftCandidate]:
    """Top up ``selected`` to ``top_n`` from ``sources`` in order.

    Candidates already present (same id or name) are skipped, as are those
    ``reject`` returns True for. ``selected`` is assumed to be unique.
    """
    result = list(selected[:top_n])
    if len(result) >= top_n:
        return result
    seen = SeenGifts(result)
    for candidate in sources:
        if len(result) >= top_n:
            break
        if candidate in seen or (reject is not None and reject(candidate)):
            continue
        seen.add(candidate)
        result.append(candidate)
    return result


def unique_top_n(
    selected: list[GiftCandidate],
    sources: Iterable[GiftCandidate],
    top_n: int,
) -> list[GiftCandidate]:
    """De-duplicate the selection, then backfill it to ``top_n``."""
    unique = remove_duplicates(selected).unique
    return backfill(unique, sources, top_n)


def enforce_memo_coverage(
    selected: list[GiftCandidate],
    pool: list[GiftCandidate],
    persona: PersonaDescriptor,
    top_n: int,
) -> CoverageOutcome:
    """Make sure both the memo and the additional memo are represented.

    For each memo (primary first) with no related candidate in the
    selection, the first related pool candidate not already selected is
    forced in. It is appended when there is room, otherwise it replaces the
    last slot that was not itself forced and is not the only candidate
    covering the other memo.
    """
    primary = extract_keywords(persona.memo)
    secondary = extract_keywords(persona.add_memo)
    result = list(selected)
    forced: list[GiftCandidate] = []
    applied = False

    for label, keywords, other in (
        ("memo", primary, secondary),
        ("add_memo", secondary, primary),
    ):
        if not keywords or any(is_related(c, keywords) for c in result):
            continue

        seen = SeenGifts(result)
        pick = next(
            (c for c in pool if is_related(c, keywords) and c not in seen), None,
        )
        if pick is None:
            logger.info("No pool candidate relates to %s keywords %s", label, keywords)
            continue

        if len(result) < top_n:
            result.append(pick)
        else:
            slot = _replaceable_slot(result, forced, other)
            if slot is None:
                logger.info("No replaceable slot left for %s coverage", label)
                continue
            logger.info(
                "Coverage for %s: replacing slot %d (%s) with %s",
                label, slot, result[slot].display_name, pick.display_name,
            )
            result[slot] = pick
        forced.append(pick)
        applied = True

    return CoverageOutcome(candidates=result, applied=applied)


def _replaceable_slot(
    result: list[GiftCandidate],
    forced: list[GiftCandidate],
    other_keywords: list[str],
) -> int | None:
    carriers = [i for i, c in enumerate(result) if other_keywords and is_related(c, other_keywords)]
    for idx in range(len(result) - 1, -1, -1):
        if any(result[idx] is f for f in forced):
            continue
        if carriers == [idx]:
            continue
        return idx
    return None


def filter_dislikes(
    selected: list[GiftCandidate],
    sources: Iterable[GiftCandidate],
    profile: PreferenceProfile | None,
    top_n: int,
    min_weight: float = 0.7,
) -> tuple[list[GiftCandidate], int]:
    """Drop candidates matching a confident dislike and backfill.

    Returns the filtered list and the number of candidates removed.
    """
    if profile is None:
        return list(selected), 0
    labels = [d.item for d in profile.dislikes if d.weight >= min_weight]
    if not labels:
        return list(selected), 0

    def disliked(candidate: GiftCandidate) -> bool:
        return is_related(candidate, labels)

    kept = [c for c in selected if not disliked(c)]
    removed = len(selected) - len(kept)
    if removed:
        logger.info("Dislike filter removed %d candidate(s) matching %s", removed, labels)
    return backfill(kept, sources, top_n, reject=disliked), removed
