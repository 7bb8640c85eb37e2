"""Tests for parsing remote completion responses."""

import json

import pytest

from codecompleter.response_parser import (
    EmptyResultError,
    ParseError,
    Suggestion,
    parse_response,
)


def make_body(text, **extra):
    candidate = {"content": {"parts": [{"text": text}]}, **extra}
    return json.dumps({"candidates": [candidate]})


class TestParseResponse:
    def test_three_lines(self):
        results = parse_response(make_body("a\nb\nc"))
        assert [s.text for s in results] == ["a", "b", "c"]
        assert [s.index for s in results] == [0, 1, 2]

    def test_at_most_three(self):
        results = parse_response(make_body("1\n2\n3\n4\n5"))
        assert [s.text for s in results] == ["1", "2", "3"]

    def test_blank_lines_and_markers_dropped(self):
        text = "COMPLETION1\n    return x\n\nCOMPLETION2\nbreak\n  \nCOMPLETION3:\ncontinue\n"
        results = parse_response(make_body(text))
        assert [s.text for s in results] == ["    return x", "break", "continue"]

    def test_unknown_fields_ignored(self):
        body = json.dumps(
            {
                "candidates": [
                    {
                        "content": {"parts": [{"text": "x"}], "role": "model"},
                        "finishReason": "STOP",
                        "safetyRatings": [],
                    }
                ],
                "usageMetadata": {"totalTokenCount": 12},
            }
        )
        assert [s.text for s in parse_response(body)] == ["x"]

    def test_bytes_body(self):
        results = parse_response(make_body("a").encode("utf-8"))
        assert results == [Suggestion(text="a", index=0)]

    @pytest.mark.parametrize(
        "body",
        [
            "not json",
            "[]",
            "{}",
            json.dumps({"candidates": []}),
            json.dumps({"candidates": [{"content": {"parts": []}}]}),
            json.dumps({"candidates": [{"content": {"parts": [{"inlineData": {}}]}}]}),
            json.dumps({"candidates": [{"finishReason": "SAFETY"}]}),
        ],
    )
    def test_malformed_bodies(self, body):
        with pytest.raises(ParseError):
            parse_response(body)

    @pytest.mark.parametrize("text", ["", "   ", "\n\t\n"])
    def test_blank_text(self, text):
        with pytest.raises(ParseError):
            parse_response(make_body(text))

    def test_only_markers_is_empty_result(self):
        with pytest.raises(EmptyResultError):
            parse_response(make_body("COMPLETION1\nCOMPLETION2\nCOMPLETION3"))


class TestSuggestion:
    def test_label_is_first_line_trimmed(self):
        s = Suggestion(text="   if x:\n        return y")
        assert s.label == "if x:"

    def test_label_of_blank_text(self):
        assert Suggestion(text="  ").label == ""

    def test_label_ignores_later_lines_when_first_is_blank(self):
        assert Suggestion(text="\n  second\nthird").label == ""
