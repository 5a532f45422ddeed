"""Character spans used for selections and write-back targets."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, frozen=True)
class TextRange:
    """Half-open ``[start, end)`` span of character offsets into a document.

    Bounds are normalized on construction: negative offsets become ``0`` and
    reversed bounds are swapped, so ``start <= end`` always holds.
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        start, end = _offset(self.start, "start"), _offset(self.end, "end")
        object.__setattr__(self, "start", min(start, end))
        object.__setattr__(self, "end", max(start, end))

    def __iter__(self):
        return iter((self.start, self.end))

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def is_caret(self) -> bool:
        return self.start == self.end

    def to_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)

    def fit(self, text_length: int) -> TextRange:
        """Return the range clipped to a document of ``text_length`` characters."""

        limit = max(0, text_length)
        return TextRange(min(self.start, limit), min(self.end, limit))

    def slice(self, text: str) -> str:
        bounded = self.fit(len(text))
        return text[bounded.start : bounded.end]

    @classmethod
    def parse(cls, text: str) -> TextRange:
        """Parse the ``START:END`` form accepted by ``improve --selection``."""

        start_text, sep, end_text = (text or "").partition(":")
        if not sep:
            raise ValueError(f"Range '{text}' must use START:END syntax")
        return cls(start_text.strip(), end_text.strip())

    @classmethod
    def from_value(cls, value: Any, *, fallback: tuple[int, int] | None = None) -> TextRange:
        """Build a range from a range, ``START:END`` string, mapping, pair or ``start``/``end`` object."""

        if isinstance(value, TextRange):
            return value
        if value is None:
            if fallback is None:
                raise ValueError("A range is required")
            return cls(*fallback)
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, Mapping):
            if "start" not in value or "end" not in value:
                raise ValueError("Range mappings need 'start' and 'end'")
            return cls(value["start"], value["end"])
        if isinstance(value, Sequence):
            if len(value) != 2:
                raise ValueError("Range pairs need exactly two offsets")
            return cls(value[0], value[1])
        if hasattr(value, "start") and hasattr(value, "end"):
            return cls(value.start, value.end)
        raise TypeError(f"Cannot build a TextRange from {type(value).__name__}")


def _offset(value: Any, label: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Range {label} must be an integer, got {value!r}") from exc
    return max(0, number)


__all__ = ["TextRange"]
