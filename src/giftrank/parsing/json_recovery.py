# src/giftrank/parsing/json_recovery.py — v1
"""Recover a JSON value from free-form LLM output.

Models are asked for "JSON only" but routinely wrap the value in prose or
code fences, emit trailing commas, or stop mid-structure when they hit the
token cap. recover() applies an ordered chain of strategies and returns the
first value that parses:

  1. whole text already valid JSON
  2. first fenced block, else greedy bracket extraction
  3. strict parse (trailing commas removed before every attempt)
  4. leading-value decode (valid value followed by chatter)
  5. bracket closure: cut after the last safe closer, close open brackets
  6. per-key salvage of known top-level array fields

Shape checks (array vs object, element types) belong to the caller.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?[ \t]*\r?\n?([\s\S]*?)(?:```|\Z)", re.IGNORECASE)
_CLOSERS = {"{": "}", "[": "]"}
_MAX_CLOSURE_ATTEMPTS = 20
_HEAD_CHARS = 300
_TAIL_CHARS = 200


class MalformedOutput(ValueError):
    """No recovery strategy produced a valid JSON value.

    Attributes:
        head: First characters of the original text.
        tail: Last characters of the original text.
    """

    def __init__(self, reason: str, text: str) -> None:
        self.reason = reason
        self.head = text[:_HEAD_CHARS]
        self.tail = text[-_TAIL_CHARS:]
        super().__init__(f"{reason} (head={self.head!r}, tail={self.tail!r})")


def recover(text: str, known_keys: Iterable[str] | None = None) -> Any:
    """Parse the JSON value contained in ``text``.

    Args:
        text: Raw generative output.
        known_keys: Top-level array-valued keys of the expected object.
            Enables per-key salvage of truncated objects.

    Returns:
        The parsed value (dict, list or scalar).

    Raises:
        MalformedOutput: If every strategy fails.
    """
    if text is None or not text.strip():
        raise MalformedOutput("empty output", text or "")

    stripped = text.strip()
    try:
        return json.loads(stripped)
    except ValueError:
        pass

    candidate, region = _extract_candidate(stripped)

    try:
        return loads_lenient(candidate)
    except ValueError:
        pass

    value = _decode_leading_value(candidate)
    if value is not None:
        logger.debug("JSON recovered by leading-value decode")
        return value

    value = _close_truncated(region)
    if value is not None:
        logger.debug("JSON recovered by bracket closure")
        return value

    if known_keys:
        salvaged = _salvage_keys(region, known_keys)
        if salvaged:
            logger.debug("JSON recovered by per-key salvage: %s", sorted(salvaged))
            return salvaged

    raise MalformedOutput("no recovery strategy succeeded", text)


def loads_lenient(text: str) -> Any:
    """json.loads after removing trailing commas outside string literals."""
    return json.loads(strip_trailing_commas(text))


def strip_trailing_commas(text: str) -> str:
    """Drop every comma that directly precedes a closing ``}`` or ``]``.

    String literals are left untouched.
    """
    out: list[str] = []
    in_string = False
    escaped = False
    n = len(text)
    i = 0
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
        elif ch == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "}]":
                i += 1
                continue
        out.append(ch)
        i += 1
    return "".join(out)


# --- Candidate extraction ---


def _extract_candidate(text: str) -> tuple[str, str]:
    """Return (candidate, region).

    ``candidate`` is the greedy bracketed slice tried by direct parsing;
    ``region`` runs from the first opener to the end of the source and is
    what the truncation repairs work on.
    """
    match = _FENCE_RE.search(text)
    source = match.group(1).strip() if match else text

    start = _first_opener(source)
    if start is None:
        return source, source

    region = source[start:]
    closer = _CLOSERS[source[start]]
    end = source.rfind(closer)
    if end > start:
        return source[start:end + 1], region
    return region, region


def _first_opener(text: str) -> int | None:
    positions = [p for p in (text.find("{"), text.find("[")) if p != -1]
    return min(positions) if positions else None


def _decode_leading_value(text: str) -> Any:
    """Decode the first complete value and ignore whatever follows it."""
    try:
        value, _ = json.JSONDecoder().raw_decode(strip_trailing_commas(text))
    except ValueError:
        return None
    if isinstance(value, (dict, list)):
        return value
    return None


# --- Truncation repair: bracket closure ---


def _scan_closers(text: str) -> list[tuple[int, str]]:
    """Positions of ``}``/``]`` outside string literals."""
    found: list[tuple[int, str]] = []
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "}]":
            found.append((i, ch))
    return found


def _next_significant(text: str, pos: int) -> str | None:
    for ch in text[pos:]:
        if not ch.isspace():
            return ch
    return None


def _safe_cut_points(text: str) -> list[int]:
    """Cut positions just after a closer that ends a complete element.

    ``}`` followed by ``,`` ``]`` or end of text; ``]`` followed by
    ``}`` ``,`` or end of text. Returned rightmost first.
    """
    cuts: list[int] = []
    for pos, ch in _scan_closers(text):
        nxt = _next_significant(text, pos + 1)
        if ch == "}" and nxt in (",", "]", None):
            cuts.append(pos + 1)
        elif ch == "]" and nxt in ("}", ",", None):
            cuts.append(pos + 1)
    cuts.reverse()
    return cuts


def _unclosed_openers(text: str) -> list[str] | None:
    """Stack of openers left unclosed, or None if brackets are mismatched."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append(ch)
        elif ch in "}]":
            if not stack or _CLOSERS[stack[-1]] != ch:
                return None
            stack.pop()
    return stack


def _close_truncated(text: str) -> Any:
    """Cut at the rightmost safe closer and append the missing closers."""
    for attempt, cut in enumerate(_safe_cut_points(text)):
        if attempt >= _MAX_CLOSURE_ATTEMPTS:
            break
        truncated = text[:cut]
        stack = _unclosed_openers(truncated)
        if stack is None:
            continue
        # Innermost first: an array nested in an object closes before it.
        repaired = truncated + "".join(_CLOSERS[o] for o in reversed(stack))
        try:
            return loads_lenient(repaired)
        except ValueError:
            continue
    return None


# --- Truncation repair: per-key salvage ---


def _matching_bracket(text: str, start: int) -> int | None:
    """Index of the ``]`` closing an array whose body starts at ``start``."""
    depth = 1
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return i
    return None


def _salvage_array(body: str, closed: bool) -> list[Any] | None:
    if closed:
        try:
            value = loads_lenient("[" + body + "]")
            if isinstance(value, list):
                return value
        except ValueError:
            pass
    last_complete = body.rfind("},")
    if last_complete < 0:
        return None
    try:
        value = loads_lenient("[" + body[:last_complete + 1] + "]")
    except ValueError:
        return None
    return value if isinstance(value, list) else None


def _salvage_keys(text: str, known_keys: Iterable[str]) -> dict[str, Any]:
    """Recover each known array-valued key independently."""
    result: dict[str, Any] = {}
    for key in known_keys:
        match = re.search(rf'"{re.escape(key)}"\s*:\s*\[', text)
        if not match:
            continue
        start = match.end()
        end = _matching_bracket(text, start)
        if end is not None:
            items = _salvage_array(text[start:end], closed=True)
        else:
            items = _salvage_array(text[start:], closed=False)
        if items is not None:
            result[key] = items
    return result
