"""Document state shared by the editor, the selection gateway and the result sink."""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

LINE_SEPARATOR = "\n"


def split_lines(text: str) -> list[str]:
    """Split generated text into editor lines.

    Uses the same separator as :func:`join_lines`, so a round trip is lossless.
    """

    return text.split(LINE_SEPARATOR)


def join_lines(lines: list[str] | tuple[str, ...]) -> str:
    return LINE_SEPARATOR.join(lines)


def content_hash(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


@dataclass(slots=True)
class DocumentMetadata:
    path: Optional[Path] = None
    language: str = "markdown"


@dataclass(slots=True)
class SelectionRange:
    """Current selection as character offsets; ``start == end`` is a bare caret."""

    start: int = 0
    end: int = 0

    def as_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)


@dataclass(slots=True)
class DocumentState:
    """Text and bookkeeping for one open document.

    ``persistent`` is ``False`` for scratch views that have no backing file
    and never prompt to save. ``prompt_override`` holds the buffer-local
    instruction prompt, if one was set for this document.
    """

    text: str = ""
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    selection: SelectionRange = field(default_factory=SelectionRange)
    dirty: bool = False
    persistent: bool = True
    prompt_override: str | None = None
    document_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    content_hash: str = ""

    def __post_init__(self) -> None:
        self.content_hash = self.content_hash or content_hash(self.text)

    @classmethod
    def from_lines(cls, lines: list[str], **kwargs: Any) -> DocumentState:
        return cls(text=join_lines(lines), **kwargs)

    def update_text(self, new_text: str) -> None:
        """Store an edit; only persistent documents become dirty."""

        self.text = new_text
        self.dirty = self.persistent
        self.content_hash = content_hash(new_text)

    @property
    def lines(self) -> list[str]:
        return split_lines(self.text)

    @property
    def needs_save_prompt(self) -> bool:
        return self.persistent and self.dirty
