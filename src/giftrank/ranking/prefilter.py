# src/giftrank/ranking/prefilter.py — v1
"""Working-set selection ahead of the rerank call.

The backend only ever sees the working set. index_map[i] is the pool
index of working_set[i], so indices the backend returns can be translated
back without searching the pool.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from giftrank.core.models import GiftCandidate, PreferenceProfile
from giftrank.ranking.keywords import related_indices

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrefilterResult:
    working_set: list[GiftCandidate]
    index_map: list[int]

    def __len__(self) -> int:
        return len(self.working_set)

    def pool_index(self, working_index: int) -> int:
        return self.index_map[working_index]


def prefilter(
    pool: list[GiftCandidate],
    profile: PreferenceProfile | None,
    max_size: int,
) -> PrefilterResult:
    """Select at most ``max_size`` candidates, liked ones first.

    With likes in the profile, candidates matching any like label come
    first, then the rest, both in pool order. Without likes the pool is
    simply capped.
    """
    if max_size < 1:
        raise ValueError(f"max_size must be >= 1, got {max_size}")

    if profile is not None and profile.has_likes:
        labels = [i.item for i in profile.likes]
        related = related_indices(pool, labels)
        matched = set(related)
        others = [i for i in range(len(pool)) if i not in matched]
        order = (related + others)[:max_size]
        logger.info(
            "Pre-filter: %d of %d candidates match likes, working set %d",
            len(related), len(pool), len(order),
            extra={"data": {"likes": labels, "matched": [pool[i].display_name for i in related]}},
        )
    else:
        order = list(range(min(len(pool), max_size)))
        if len(pool) > max_size:
            logger.info("Pre-filter: pool capped from %d to %d", len(pool), max_size)

    return PrefilterResult(
        working_set=[pool[i] for i in order],
        index_map=order,
    )
