# src/giftrank/preferences/profile.py — v1
"""Preference profile normalisation, validation and priority rules.

Priority, highest first:
  1. PreferenceProfile.likes     (extracted from memos, weighted)
  2. PreferenceProfile.dislikes
  3. PreferenceProfile.uncertain
  4. Raw persona memo / additional memo

A profile with any non-empty collection is authoritative. Only when it is
absent or empty do the persona memo fields drive keyword coverage.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from giftrank.core.models import PersonaDescriptor, PreferenceItem, PreferenceProfile
from giftrank.core.text import is_meaningful

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 0.7
PROFILE_KEYS: tuple[str, ...] = ("likes", "dislikes", "uncertain")


@dataclass(frozen=True)
class ProfileValidation:
    """Outcome of validate_profile()."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PriorityDecision:
    """Which preference source the ranking pipeline should trust."""

    use_profile: bool
    reason: str
    has_memo: bool = False
    has_add_memo: bool = False


def normalize_item(raw: Any, default_weight: float = DEFAULT_WEIGHT) -> PreferenceItem | None:
    """Normalise one raw preference record.

    A bare string becomes an item that is its own evidence. Mappings need a
    non-empty ``item`` label; ``weight`` defaults and is clamped to [0, 1].
    Anything else yields None.
    """
    if isinstance(raw, str):
        label = raw.strip()
        if not label:
            return None
        return PreferenceItem(item=label, evidence=[raw], weight=default_weight)

    if not isinstance(raw, Mapping):
        return None

    label = str(raw.get("item") or "").strip()
    if not label:
        return None

    evidence_raw = raw.get("evidence")
    if isinstance(evidence_raw, (list, tuple)):
        evidence = [str(e) for e in evidence_raw if e is not None]
    elif evidence_raw:
        evidence = [str(evidence_raw)]
    else:
        evidence = []

    return PreferenceItem(
        item=label, evidence=evidence, weight=_coerce_weight(raw.get("weight"), default_weight),
    )


def _coerce_weight(value: Any, default_weight: float) -> float:
    """Clamp a numeric weight into [0, 1]. NaN, infinities and huge ints give the default."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default_weight
    try:
        weight = float(value)
    except (OverflowError, ValueError):
        return default_weight
    if not math.isfinite(weight):
        return default_weight
    return min(max(weight, 0.0), 1.0)


def normalize_items(raw: Any, default_weight: float = DEFAULT_WEIGHT) -> list[PreferenceItem]:
    """Normalise a raw collection; unusable entries are dropped silently."""
    if not isinstance(raw, (list, tuple)):
        return []
    items = (normalize_item(r, default_weight) for r in raw)
    return [i for i in items if i is not None]


def sort_by_weight(items: list[PreferenceItem]) -> list[PreferenceItem]:
    """Stable sort, highest weight first."""
    return sorted(items, key=lambda i: i.weight, reverse=True)


def _decode_collection(value: Any) -> Any:
    """Persisted profiles may store each collection as a JSON string."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("Preference collection is not valid JSON, ignoring it")
            return []
    return value


def validate_profile(raw: Mapping[str, Any] | None) -> ProfileValidation:
    """Structural checks on a raw profile mapping. None is valid (no profile)."""
    if raw is None:
        return ProfileValidation(is_valid=True)

    errors: list[str] = []
    for key in PROFILE_KEYS:
        if key not in raw:
            errors.append(f"Missing required field: {key}")
            continue
        items = _decode_collection(raw[key])
        if not isinstance(items, list):
            errors.append(f"{key} must be an array")
            continue
        for idx, item in enumerate(items):
            if not isinstance(item, Mapping):
                errors.append(f"{key}[{idx}] must be an object")
                continue
            if not isinstance(item.get("item"), str) or not item["item"].strip():
                errors.append(f"{key}[{idx}].item must be a non-empty string")
            weight = item.get("weight")
            if weight is not None and (
                isinstance(weight, bool)
                or not isinstance(weight, (int, float))
                or not 0.0 <= weight <= 1.0
            ):
                errors.append(f"{key}[{idx}].weight must be a number between 0 and 1")
            evidence = item.get("evidence")
            if evidence is not None and not isinstance(evidence, list):
                errors.append(f"{key}[{idx}].evidence must be an array")

    return ProfileValidation(is_valid=not errors, errors=errors)


def build_profile(
    raw: Mapping[str, Any] | PreferenceProfile | None,
    default_weight: float = DEFAULT_WEIGHT,
) -> PreferenceProfile | None:
    """Build a normalised, weight-sorted profile from persisted extraction results.

    Validation problems are logged but never fatal: whatever items can be
    normalised are kept.
    """
    if raw is None:
        return None
    if isinstance(raw, PreferenceProfile):
        collections = {k: list(getattr(raw, k)) for k in PROFILE_KEYS}
        return PreferenceProfile(**{k: sort_by_weight(v) for k, v in collections.items()})

    validation = validate_profile(raw)
    if not validation.is_valid:
        logger.warning(
            "Preference profile failed validation",
            extra={"data": {"errors": validation.errors}},
        )

    profile = PreferenceProfile(
        **{
            key: sort_by_weight(
                normalize_items(_decode_collection(raw.get(key)), default_weight)
            )
            for key in PROFILE_KEYS
        }
    )
    logger.info(
        "Preference profile loaded: likes=%d, dislikes=%d, uncertain=%d",
        len(profile.likes), len(profile.dislikes), len(profile.uncertain),
    )
    return profile


def decide_priority(
    profile: PreferenceProfile | None, persona: PersonaDescriptor | None,
) -> PriorityDecision:
    """Decide whether the profile or the persona memos drive preferences."""
    if profile is not None and not profile.is_empty:
        return PriorityDecision(
            use_profile=True,
            reason="Preference profile has data, using profile as primary source",
        )

    has_memo = persona is not None and is_meaningful(persona.memo)
    has_add_memo = persona is not None and is_meaningful(persona.add_memo)

    if has_memo or has_add_memo:
        reason = (
            "No preference profile available, using memo data"
            if profile is None
            else "Preference profile is empty, falling back to memo data"
        )
        return PriorityDecision(
            use_profile=False, reason=reason, has_memo=has_memo, has_add_memo=has_add_memo,
        )

    return PriorityDecision(
        use_profile=False,
        reason="No preference data available (profile empty and no memo)",
    )
