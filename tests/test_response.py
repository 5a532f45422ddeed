"""Tests for decoding generateContent responses."""

from __future__ import annotations

import json

import pytest

from gemini_improve.ai.ai_types import Failure, Success
from gemini_improve.ai.errors import ErrorCode
from gemini_improve.ai.response import parse_response


def test_parse_success_returns_first_candidate_text() -> None:
    body = json.dumps({"candidates": [{"content": {"parts": [{"text": "Hello"}]}}]})

    assert parse_response(body) == Success("Hello")


def test_parse_error_payload_reports_message() -> None:
    result = parse_response('{"error":{"message":"quota exceeded"}}')

    assert isinstance(result, Failure)
    assert result.code == ErrorCode.API_ERROR
    assert "quota exceeded" in result.reason
    assert result.raw_body is None


def test_parse_invalid_json_keeps_raw_body() -> None:
    result = parse_response("not json")

    assert isinstance(result, Failure)
    assert result.code == ErrorCode.MALFORMED_RESPONSE
    assert result.reason.startswith("malformed JSON")
    assert result.raw_body == "not json"


@pytest.mark.parametrize(
    "body",
    [
        "{}",
        "[]",
        "42",
        '"text"',
        "null",
        '{"candidates": []}',
        '{"candidates": [{}]}',
        '{"candidates": [{"content": {"parts": []}}]}',
        '{"candidates": [{"content": {"parts": [{"text": 7}]}}]}',
        '{"candidates": "nope"}',
        '{"error": null}',
    ],
)
def test_parse_unexpected_shapes_never_raise(body: str) -> None:
    result = parse_response(body)

    assert isinstance(result, Failure)
    assert result.code == ErrorCode.UNEXPECTED_RESPONSE_SHAPE
    assert result.raw_body == body


def test_parse_error_without_message_falls_back_to_status() -> None:
    result = parse_response('{"error": {"code": 429, "status": "RESOURCE_EXHAUSTED"}}')

    assert isinstance(result, Failure)
    assert result.reason == "API error: RESOURCE_EXHAUSTED"


def test_parse_is_total_for_deeply_nested_input() -> None:
    result = parse_response("[" * 100_000 + "]" * 100_000)

    assert isinstance(result, (Success, Failure))
