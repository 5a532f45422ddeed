"""Tests for payload construction and truncation."""

from __future__ import annotations

import json

import pytest

from gemini_improve.ai.errors import EmptyInputError, ErrorCode
from gemini_improve.ai.payload import build_payload, truncate_input


def test_payload_json_has_single_part_with_combined_text() -> None:
    payload = build_payload("Improve:", "Ünïcode body\nsecond line")

    decoded = json.loads(payload.to_json())

    assert list(decoded) == ["contents"]
    assert len(decoded["contents"]) == 1
    parts = decoded["contents"][0]["parts"]
    assert parts == [{"text": "Improve:\n\nÜnïcode body\nsecond line"}]


def test_build_payload_rejects_empty_body() -> None:
    with pytest.raises(EmptyInputError) as excinfo:
        build_payload("Improve:", "")
    assert excinfo.value.error_code == ErrorCode.EMPTY_INPUT


def test_truncate_input_clips_to_limit_with_warning() -> None:
    clipped = truncate_input("x" * 12, 10)

    assert clipped.truncated
    assert len(clipped.text) == 10
    assert clipped.warning == "Text too long (12 chars). Truncating to 10 characters."


def test_truncate_input_keeps_short_text() -> None:
    clipped = truncate_input("short", 10)

    assert clipped.text == "short"
    assert not clipped.truncated
    assert clipped.warning is None


def test_truncate_input_requires_positive_limit() -> None:
    with pytest.raises(ValueError):
        truncate_input("text", 0)
