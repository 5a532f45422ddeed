"""Tests for the TextRange helper."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from gemini_improve.core.ranges import TextRange


def test_reversed_bounds_are_swapped_and_negative_clamped() -> None:
    assert TextRange(8, 3).to_tuple() == (3, 8)
    assert TextRange(-4, 2).to_tuple() == (0, 2)


def test_from_value_accepts_common_shapes() -> None:
    assert TextRange.from_value("2:5") == TextRange(2, 5)
    assert TextRange.from_value({"start": 1, "end": 4}) == TextRange(1, 4)
    assert TextRange.from_value((3, 9)) == TextRange(3, 9)
    assert TextRange.from_value(SimpleNamespace(start=0, end=1)) == TextRange(0, 1)
    assert TextRange.from_value(None, fallback=(0, 0)).is_caret


@pytest.mark.parametrize("value", ["7", "a:b", (1, 2, 3)])
def test_from_value_rejects_bad_input(value: object) -> None:
    with pytest.raises(ValueError):
        TextRange.from_value(value)


def test_slice_clamps_to_text() -> None:
    text = "hello world"
    assert TextRange(6, 50).slice(text) == "world"
    assert TextRange(0, 5).length == 5


def test_fit_clips_to_document_length() -> None:
    assert TextRange(4, 40).fit(10) == TextRange(4, 10)
    assert TextRange(12, 20).fit(10).is_caret


def test_parse_reports_missing_separator() -> None:
    with pytest.raises(ValueError, match="START:END"):
        TextRange.parse("12")
