# src/giftrank/ranking/keywords.py — v1
"""Memo keyword extraction and candidate relatedness.

Relatedness is a plain case-insensitive substring test against the
candidate's name, category and description. Memo text is reduced to
content tokens first: "I like golf" and "골프를 좋아함" both give "golf" /
"골프".
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from giftrank.core.models import GiftCandidate
from giftrank.core.text import is_meaningful

# Korean connective endings ("를 좋아함", "이 있음") removed before tokenising.
_KO_CONNECTIVES = re.compile(
    r"(을|를)?\s*(좋아함|좋아해요|좋아해|좋아하|즐김|즐겨|관심|싫어함|싫어해|싫어하|별로)"
    r"|(이|가)?\s*(있음|있어|없음|없어)"
)
_TOKEN_SPLIT = re.compile(r"[\W_]+", re.UNICODE)

STOPWORDS: frozenset[str] = frozenset(
    {
        "i", "im", "me", "my", "he", "she", "they", "his", "her", "their",
        "like", "likes", "liked", "love", "loves", "loved", "enjoy", "enjoys",
        "enjoyed", "dislike", "dislikes", "disliked", "hate", "hates", "prefer",
        "prefers", "into", "fan", "really", "very", "much", "also", "and", "or",
        "the", "a", "an", "to", "of", "for", "with", "in", "on", "is", "are",
        "has", "have", "not", "dont", "doesnt", "does", "do", "some",
    }
)


def extract_keywords(text: str | None) -> list[str]:
    """Content tokens of a memo, lower-cased, order-preserving, unique."""
    if not is_meaningful(text):
        return []
    cleaned = _KO_CONNECTIVES.sub(" ", text or "")
    keywords: list[str] = []
    for token in _TOKEN_SPLIT.split(cleaned.lower()):
        if not token or token in STOPWORDS:
            continue
        if token.isascii() and len(token) < 2:
            continue
        if token not in keywords:
            keywords.append(token)
    return keywords


def is_related(candidate: GiftCandidate, keywords: Iterable[str]) -> bool:
    """True when any keyword occurs in the candidate's search text."""
    haystack = candidate.search_text
    return any(k and k.lower() in haystack for k in keywords)


def related_indices(pool: list[GiftCandidate], keywords: list[str]) -> list[int]:
    """Pool indices of candidates related to the keywords, in pool order."""
    if not keywords:
        return []
    return [i for i, c in enumerate(pool) if is_related(c, keywords)]
