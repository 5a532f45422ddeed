"""Text buffer for one tab, mirrored into a ``QPlainTextEdit`` when Qt is running.

The buffer, selection and undo history are plain Python so selections can be
captured and results written back without a display. A Qt editor is only
created once a ``QApplication`` exists.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Callable

from ..core.ranges import TextRange
from .document_model import DocumentState, SelectionRange, join_lines

QTextCursor: Any = None
QApplication: Any = None
QPlainTextEdit: Any = None
QVBoxLayout: Any = None
QWidget: Any = None

try:  # pragma: no cover - PySide6 optional in CI
    from PySide6.QtGui import QTextCursor as _QtTextCursor  # type: ignore[import-not-found]
    from PySide6.QtWidgets import (
        QApplication as _QtApplication,
        QPlainTextEdit as _QtPlainTextEdit,
        QVBoxLayout as _QtVBoxLayout,
        QWidget as _QtWidget,
    )

    QTextCursor = _QtTextCursor
    QApplication = _QtApplication
    QPlainTextEdit = _QtPlainTextEdit
    QVBoxLayout = _QtVBoxLayout
    QWidget = _QtWidget
except ImportError:  # pragma: no cover - runtime fallback
    pass

TextChangeListener = Callable[[str, DocumentState], None]


class EditorWidget:
    """Holds a document's text and selection and applies edits to them.

    Read-only mode only blocks typing in the Qt editor; result write-back and
    other programmatic edits still go through.
    """

    MAX_HISTORY = 50

    def __init__(self, parent: Any | None = None) -> None:
        self._state = DocumentState()
        self._text = ""
        self._selection = SelectionRange()
        self._readonly = False
        self._history: deque[str] | None = deque(maxlen=self.MAX_HISTORY)
        self._listeners: list[TextChangeListener] = []
        self._container: Any = None
        self._qt_editor: Any = None
        if QApplication is not None and QApplication.instance() is not None:
            self._build_qt(parent)

    def _build_qt(self, parent: Any | None) -> None:
        self._container = QWidget(parent)
        self._qt_editor = QPlainTextEdit(self._container)
        self._qt_editor.textChanged.connect(self._on_qt_text_changed)  # type: ignore[attr-defined]
        self._qt_editor.selectionChanged.connect(self._on_qt_selection_changed)  # type: ignore[attr-defined]
        self._qt_editor.cursorPositionChanged.connect(self._on_qt_selection_changed)  # type: ignore[attr-defined]
        layout = QVBoxLayout(self._container)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._qt_editor)

    @property
    def qt_widget(self) -> Any:
        return self._container

    @property
    def qt_editor(self) -> Any:
        return self._qt_editor

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------
    def set_readonly(self, readonly: bool) -> None:
        self._readonly = bool(readonly)
        if self._qt_editor is not None:
            self._qt_editor.setReadOnly(self._readonly)

    def is_readonly(self) -> bool:
        return self._readonly

    def set_history_enabled(self, enabled: bool) -> None:
        """Turn undo tracking on or off; turning it off forgets past snapshots."""

        self._history = deque(self._history or (), maxlen=self.MAX_HISTORY) if enabled else None
        if self._qt_editor is not None:
            self._qt_editor.setUndoRedoEnabled(bool(enabled))

    # ------------------------------------------------------------------
    # Document
    # ------------------------------------------------------------------
    def load_document(self, document: DocumentState) -> None:
        self._state = document
        self._text = document.text
        self._selection = SelectionRange()
        if self._history is not None:
            self._history.clear()
        self._mirror_to_qt()
        self._emit()

    def to_document(self) -> DocumentState:
        self._state.text = self._text
        self._state.selection = SelectionRange(self._selection.start, self._selection.end)
        return self._state

    @property
    def text(self) -> str:
        return self._text

    def add_text_listener(self, listener: TextChangeListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------
    def set_text(self, text: str) -> None:
        """Replace the whole buffer; the previous text becomes an undo step."""

        if text == self._text:
            return
        if self._history is not None:
            self._history.append(self._text)
        self._apply(text)

    def replace_range(self, start: int, end: int, replacement: str) -> TextRange:
        """Swap ``[start:end]`` for ``replacement`` and select what was inserted."""

        target = TextRange(start, end).fit(len(self._text))
        self.set_text(self._text[: target.start] + replacement + self._text[target.end :])
        inserted = TextRange(target.start, target.start + len(replacement))
        self.select(inserted)
        return inserted

    def replace_lines(self, start: int, end: int, lines: list[str]) -> TextRange:
        """Replace ``[start:end]`` with ``lines`` joined on the document line separator."""

        return self.replace_range(start, end, join_lines(lines))

    def undo(self) -> bool:
        if not self._history:
            return False
        self._apply(self._history.pop())
        self.select((len(self._text), len(self._text)))
        return True

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def select(self, selection: Any) -> None:
        """Select a range given as a range, mapping or pair, clipped to the buffer."""

        try:
            requested = TextRange.from_value(selection)
        except (TypeError, ValueError) as exc:
            raise ValueError("Selection must provide start/end bounds") from exc
        bounded = requested.fit(len(self._text))
        self._selection = SelectionRange(bounded.start, bounded.end)
        if self._qt_editor is not None and QTextCursor is not None:
            cursor = self._qt_editor.textCursor()
            cursor.setPosition(bounded.start)
            cursor.setPosition(bounded.end, QTextCursor.KeepAnchor)  # type: ignore[attr-defined]
            self._qt_editor.blockSignals(True)
            self._qt_editor.setTextCursor(cursor)
            self._qt_editor.blockSignals(False)

    def selection_span(self) -> tuple[int, int]:
        return (self._selection.start, self._selection.end)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _apply(self, text: str) -> None:
        self._text = text
        self._state.update_text(text)
        self._mirror_to_qt()
        self._emit()

    def _mirror_to_qt(self) -> None:
        if self._qt_editor is None:
            return
        self._qt_editor.blockSignals(True)
        self._qt_editor.setPlainText(self._text)
        self._qt_editor.blockSignals(False)

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self._text, self._state)

    def _on_qt_text_changed(self) -> None:
        typed = self._qt_editor.toPlainText()
        if typed == self._text:
            return
        if self._history is not None:
            self._history.append(self._text)
        self._text = typed
        self._state.update_text(typed)
        self._emit()

    def _on_qt_selection_changed(self) -> None:
        cursor = self._qt_editor.textCursor()
        self._selection = SelectionRange(cursor.selectionStart(), cursor.selectionEnd())


__all__ = ["EditorWidget", "TextChangeListener"]
