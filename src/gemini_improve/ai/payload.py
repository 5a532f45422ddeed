"""Request payload construction and input length limits."""

from __future__ import annotations

from dataclasses import dataclass

from .ai_types import RequestPayload
from .errors import EmptyInputError

INSTRUCTION_SEPARATOR = "\n\n"
DEFAULT_MAX_INPUT_LENGTH = 30_000


@dataclass(slots=True, frozen=True)
class TruncatedInput:
    """Text clipped to the configured limit plus the warning to surface."""

    text: str
    original_length: int
    limit: int

    @property
    def truncated(self) -> bool:
        return self.original_length > self.limit

    @property
    def warning(self) -> str | None:
        if not self.truncated:
            return None
        return (
            f"Text too long ({self.original_length} chars). "
            f"Truncating to {self.limit} characters."
        )


def truncate_input(text: str, max_length: int = DEFAULT_MAX_INPUT_LENGTH) -> TruncatedInput:
    """Clip ``text`` to ``max_length`` characters."""

    if max_length <= 0:
        raise ValueError("max_length must be a positive integer")
    original_length = len(text)
    if original_length > max_length:
        text = text[:max_length]
    return TruncatedInput(text=text, original_length=original_length, limit=max_length)


def combine_text(instruction: str, body_text: str) -> str:
    return f"{instruction}{INSTRUCTION_SEPARATOR}{body_text}"


def build_payload(instruction: str, body_text: str) -> RequestPayload:
    """Wrap ``instruction`` and ``body_text`` in the contents/parts structure."""

    if not body_text:
        raise EmptyInputError()
    return RequestPayload(text=combine_text(instruction, body_text))


__all__ = [
    "DEFAULT_MAX_INPUT_LENGTH",
    "INSTRUCTION_SEPARATOR",
    "TruncatedInput",
    "build_payload",
    "combine_text",
    "truncate_input",
]
