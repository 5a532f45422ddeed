"""Captures the text an improvement request operates on."""

from __future__ import annotations

from dataclasses import dataclass

from ..core.ranges import TextRange
from .document_model import DocumentState
from .workspace import DocumentTab, DocumentWorkspace


@dataclass(slots=True, frozen=True)
class SelectionSnapshot:
    """Region of a document as it was when the request started.

    ``text_range`` is where the result will be written back in replace mode;
    ``text`` is the region as stored in the buffer, whose lines are already
    joined with :data:`~.document_model.LINE_SEPARATOR`.
    """

    tab_id: str
    document_id: str
    content_hash: str
    text_range: TextRange
    text: str

    @property
    def is_empty(self) -> bool:
        return not self.text

    def is_stale(self, document: DocumentState) -> bool:
        """Whether ``document`` was edited (or swapped) after this capture."""

        return document.document_id != self.document_id or document.content_hash != self.content_hash


class SelectionGateway:
    def __init__(self, workspace: DocumentWorkspace) -> None:
        self._workspace = workspace

    def capture_selection(self, *, tab_id: str | None = None) -> SelectionSnapshot:
        tab = self._workspace.resolve_tab(tab_id)
        span = TextRange.from_value(tab.editor.selection_span())
        return self._capture(tab, span)

    def capture_document(self, *, tab_id: str | None = None) -> SelectionSnapshot:
        tab = self._workspace.resolve_tab(tab_id)
        return self._capture(tab, TextRange(0, len(tab.editor.text)))

    @staticmethod
    def _capture(tab: DocumentTab, span: TextRange) -> SelectionSnapshot:
        document = tab.document()
        span = span.fit(len(document.text))
        return SelectionSnapshot(
            tab_id=tab.id,
            document_id=document.document_id,
            content_hash=document.content_hash,
            text_range=span,
            text=span.slice(document.text),
        )


__all__ = ["SelectionGateway", "SelectionSnapshot"]
