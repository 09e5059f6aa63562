# tests/unit/parsing/test_json_recovery.py — v1
"""Tests for parsing/json_recovery.py: lenient JSON recovery from LLM output."""

from __future__ import annotations

import json

import pytest

from giftrank.parsing.json_recovery import (
    MalformedOutput,
    _salvage_keys,
    loads_lenient,
    recover,
    strip_trailing_commas,
)


class TestDirectParse:
    def test_plain_array(self):
        assert recover("[2, 0, 4]") == [2, 0, 4]

    def test_plain_object(self):
        assert recover('{"title": "Golf lover"}') == {"title": "Golf lover"}

    def test_surrounding_whitespace(self):
        assert recover("  \n[1]\n ") == [1]

    @pytest.mark.parametrize(
        "value",
        [
            [1, 2, 3],
            {"a": [1, {"b": "c"}]},
            "plain string",
            "string with [brackets] and ```fences```",
            42,
            None,
            {"text": "trailing, ]"},
        ],
    )
    def test_round_trip(self, value):
        assert recover(json.dumps(value)) == value


class TestFenceAndBrackets:
    def test_json_fence(self):
        text = 'Here you go:\n```json\n[3, 1, 0]\n```\nHope it helps.'
        assert recover(text) == [3, 1, 0]

    def test_untagged_fence(self):
        assert recover("```\n{\"a\": 1}\n```") == {"a": 1}

    def test_unterminated_fence(self):
        assert recover("```json\n[1, 2]") == [1, 2]

    def test_prose_around_array(self):
        assert recover("The best picks are [2, 0, 4] in that order.") == [2, 0, 4]

    def test_prose_around_object(self):
        text = 'Sure! {"title": "Wine lover", "description": "Great wine."} Enjoy.'
        assert recover(text) == {"title": "Wine lover", "description": "Great wine."}

    def test_only_first_fence_is_used(self):
        text = "```json\n[1]\n```\nor maybe\n```json\n[2]\n```"
        assert recover(text) == [1]


class TestTrailingCommas:
    def test_array(self):
        assert recover("[1, 2, 3,]") == [1, 2, 3]

    def test_object(self):
        assert recover('{"a": 1, "b": 2,\n}') == {"a": 1, "b": 2}

    def test_comma_inside_string_kept(self):
        assert strip_trailing_commas('["a,]", 1,]') == '["a,]", 1]'

    def test_loads_lenient(self):
        assert loads_lenient('{"x": [1,],}') == {"x": [1]}


class TestLeadingValue:
    def test_value_followed_by_second_value(self):
        assert recover("[1, 2] and also [3]") == [1, 2]


class TestTruncation:
    def test_truncated_object_array(self):
        text = '[{"id": 1}, {"id": 2}, {"id": 3'
        assert recover(text) == [{"id": 1}, {"id": 2}]

    def test_truncated_nested_profile(self):
        text = (
            '{"likes": [{"item": "golf", "weight": 0.9}, '
            '{"item": "wine", "weight": 0.7}], "dislikes": [{"item": "can'
        )
        value = recover(text)
        assert value["likes"] == [
            {"item": "golf", "weight": 0.9},
            {"item": "wine", "weight": 0.7},
        ]

    def test_truncated_inside_string_with_braces(self):
        text = '[{"note": "a } b"}, {"note": "c'
        assert recover(text) == [{"note": "a } b"}]

    def test_truncated_after_fence(self):
        text = '```json\n[{"id": 1}, {"id": 2'
        assert recover(text) == [{"id": 1}]


_GIFTS = [
    {"id": i, "name": f"gift {i}", "tags": ["a", "b"], "meta": {"price": i * 10}}
    for i in range(5)
]


def _truncations() -> list[tuple[int, str]]:
    """Every cut between element i and i+1, up to the next element's last brace."""
    full = json.dumps(_GIFTS)
    cases = []
    for i in range(len(_GIFTS) - 1):
        end = len("[" + ", ".join(json.dumps(g) for g in _GIFTS[: i + 1]))
        next_end = len("[" + ", ".join(json.dumps(g) for g in _GIFTS[: i + 2]))
        for cut in range(end, next_end):
            cases.append((i, full[:cut]))
    return cases


class TestTruncationAtEveryBoundary:
    @pytest.mark.parametrize(("i", "text"), _truncations())
    def test_keeps_complete_prefix(self, i, text):
        value = recover(text)
        assert value[: i + 1] == _GIFTS[: i + 1]


class TestKeySalvage:
    def test_recovers_known_keys_from_truncated_object(self):
        text = (
            '{"likes": [{"item": "golf"}], "dislikes": [{"item": "candle"}, '
            '{"item": "spic'
        )
        value = recover(text, known_keys=("likes", "dislikes", "uncertain"))
        assert value["likes"] == [{"item": "golf"}]
        assert value["dislikes"] == [{"item": "candle"}]
        assert "uncertain" not in value

    def test_salvage_per_key(self):
        text = (
            '"likes": [{"item": "golf"}], "dislikes": [{"item": "candle"}, '
            '{"item": "spic'
        )
        value = _salvage_keys(text, ("likes", "dislikes", "uncertain"))
        assert value == {
            "likes": [{"item": "golf"}],
            "dislikes": [{"item": "candle"}],
        }

    def test_salvage_nothing(self):
        assert _salvage_keys('"likes": [{"item": "go', ("likes",)) == {}


class TestFailures:
    def test_empty(self):
        with pytest.raises(MalformedOutput):
            recover("")

    def test_whitespace_only(self):
        with pytest.raises(MalformedOutput):
            recover("   \n\t")

    def test_no_json(self):
        with pytest.raises(MalformedOutput) as exc_info:
            recover("I cannot help with that request.")
        assert exc_info.value.head.startswith("I cannot help")

    def test_excerpts(self):
        text = "x" * 1000
        with pytest.raises(MalformedOutput) as exc_info:
            recover(text)
        assert len(exc_info.value.head) == 300
        assert len(exc_info.value.tail) == 200

    def test_is_value_error(self):
        assert issubclass(MalformedOutput, ValueError)
