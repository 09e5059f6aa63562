# src/giftrank/core/text.py — v1
"""Small text helpers shared by the preference and ranking modules."""

from __future__ import annotations

# Values upstream forms store when a field was left blank.
PLACEHOLDER_VALUES: frozenset[str] = frozenset(
    {"정보없음", "정보 없음", "없음", "n/a", "na", "none", "unknown", "-"}
)


def is_meaningful(text: str | None) -> bool:
    """True when text is non-empty after strip and not a placeholder."""
    if not text:
        return False
    stripped = text.strip()
    return bool(stripped) and stripped.lower() not in PLACEHOLDER_VALUES


def normalize_name(name: str | None) -> str:
    """Identity form of a gift name: trimmed and lower-cased."""
    return (name or "").strip().lower()


def truncate(text: str, max_length: int) -> str:
    """Cap text at max_length characters, marking the cut with '...'."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."
