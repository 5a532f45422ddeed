"""Instruction prompts and the rules deciding which one governs a request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

DEFAULT_PROMPT = (
    "Improve the following text for clarity, grammar, and style, while maintaining its original "
    "meaning and tone. Return only the improved text, without any conversational filler:"
)

SCOPE_DOCUMENT = "buffer-local"
SCOPE_DEFAULT = "default"


class PromptCarrier(Protocol):
    """Anything holding a per-document prompt override."""

    prompt_override: str | None


def resolve_prompt(document_override: str | None, default_prompt: str) -> str:
    """Return the override when present and non-empty, else ``default_prompt``."""

    if document_override is not None and document_override.strip():
        return document_override
    return default_prompt


@dataclass(slots=True)
class ActivePrompt:
    """Prompt in effect for a document plus the scope it came from."""

    text: str
    scope: str

    def describe(self) -> str:
        return f"Current {self.scope} Gemini prompt: {self.text}"


class PromptState:
    """Process-wide default prompt; per-document overrides live on documents."""

    def __init__(self, default_prompt: str = DEFAULT_PROMPT) -> None:
        self._default_prompt = _require_prompt(default_prompt)

    @property
    def default_prompt(self) -> str:
        return self._default_prompt

    def set_default(self, prompt: str) -> str:
        self._default_prompt = _require_prompt(prompt)
        return self._default_prompt

    @staticmethod
    def set_document(document: PromptCarrier, prompt: str) -> str:
        value = _require_prompt(prompt)
        document.prompt_override = value
        return value

    @staticmethod
    def clear_document(document: PromptCarrier) -> None:
        document.prompt_override = None

    def active_prompt(self, document: PromptCarrier | None = None) -> ActivePrompt:
        override = document.prompt_override if document is not None else None
        scope = SCOPE_DOCUMENT if override is not None and override.strip() else SCOPE_DEFAULT
        return ActivePrompt(text=resolve_prompt(override, self._default_prompt), scope=scope)

    def resolve(self, document: PromptCarrier | None = None) -> str:
        return self.active_prompt(document).text


def _require_prompt(prompt: str) -> str:
    value = (prompt or "").strip()
    if not value:
        raise ValueError("Prompt text must not be empty")
    return value


__all__ = [
    "DEFAULT_PROMPT",
    "SCOPE_DEFAULT",
    "SCOPE_DOCUMENT",
    "ActivePrompt",
    "PromptState",
    "resolve_prompt",
]
