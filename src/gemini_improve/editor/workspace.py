"""Open documents and the result views generated from them."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

from ..utils.file_io import detect_language, read_text
from .document_model import DocumentMetadata, DocumentState
from .editor_widget import EditorWidget

__all__ = ["DocumentTab", "DocumentWorkspace", "TabListener"]

TabListener = Callable[[Optional["DocumentTab"]], None]


def _resolve(path: Path | str) -> Path:
    return Path(path).expanduser().resolve()


@dataclass(slots=True)
class DocumentTab:
    """One open editor.

    ``source_tab_id`` is set on result views and names the tab whose text was
    sent for improvement.
    """

    id: str
    editor: EditorWidget
    base_title: str = "Untitled"
    title: str = "Untitled"
    source_tab_id: str | None = None

    def document(self) -> DocumentState:
        return self.editor.to_document()

    @property
    def path(self) -> Path | None:
        return self.editor.to_document().metadata.path

    @property
    def dirty(self) -> bool:
        return self.editor.to_document().dirty

    @property
    def readonly(self) -> bool:
        return self.editor.is_readonly()

    @property
    def is_result_view(self) -> bool:
        return self.source_tab_id is not None

    def update_title(self, base: str | None = None) -> str:
        """Recompute ``title`` from the file name (or ``base``) plus a ``*`` when unsaved."""

        if base is not None:
            self.base_title = base
        document = self.document()
        name = document.metadata.path.name if document.metadata.path is not None else self.base_title
        self.title = f"*{name}" if document.needs_save_prompt else name
        return self.title


class DocumentWorkspace:
    """Ordered set of tabs with one active tab."""

    def __init__(self, *, editor_factory: Callable[[], EditorWidget] | None = None) -> None:
        self._editor_factory = editor_factory or EditorWidget
        self._tabs: Dict[str, DocumentTab] = {}
        self._order: List[str] = []
        self._active_tab_id: str | None = None
        self._active_listeners: List[TabListener] = []
        self._created_listeners: List[TabListener] = []
        self._untitled = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def create_tab(
        self,
        *,
        document: DocumentState | None = None,
        path: Path | str | None = None,
        title: str | None = None,
        make_active: bool = True,
        readonly: bool = False,
        source_tab_id: str | None = None,
    ) -> DocumentTab:
        document = document or DocumentState()
        if path is not None:
            document.metadata.path = _resolve(path)
        if title is None and document.metadata.path is None:
            self._untitled += 1
            title = f"Untitled {self._untitled}"

        editor = self._editor_factory()
        # Scratch buffers keep no undo history.
        editor.set_history_enabled(document.persistent)
        editor.load_document(document)
        editor.set_readonly(readonly)

        tab = DocumentTab(id=uuid.uuid4().hex, editor=editor, source_tab_id=source_tab_id)
        tab.update_title(title or "Untitled")
        self._tabs[tab.id] = tab
        self._order.append(tab.id)
        for listener in list(self._created_listeners):
            listener(tab)
        if make_active or self._active_tab_id is None:
            self.set_active_tab(tab.id)
        return tab

    def open_file(self, path: Path | str, *, make_active: bool = True) -> DocumentTab:
        """Open ``path``; a file that is already open is focused instead of reloaded."""

        resolved = _resolve(path)
        for tab in self.iter_tabs():
            if tab.path == resolved:
                if make_active:
                    self.set_active_tab(tab.id)
                return tab
        document = DocumentState(
            text=read_text(resolved),
            metadata=DocumentMetadata(path=resolved, language=detect_language(resolved)),
        )
        return self.create_tab(document=document, make_active=make_active)

    def close_tab(self, tab_id: str) -> DocumentTab:
        """Remove ``tab_id``; the neighbour to its right (or left) becomes active."""

        if tab_id not in self._tabs:
            raise KeyError(f"Unknown tab_id: {tab_id}")
        index = self._order.index(tab_id)
        self._order.remove(tab_id)
        tab = self._tabs.pop(tab_id)
        if self._active_tab_id == tab_id:
            self._active_tab_id = self._order[min(index, len(self._order) - 1)] if self._order else None
            self._notify_active()
        return tab

    def ensure_tab(self) -> DocumentTab:
        if self._order:
            return self._tabs[self._order[-1]]
        return self.create_tab()

    def set_active_tab(self, tab_id: str) -> DocumentTab:
        tab = self.get_tab(tab_id)
        if self._active_tab_id != tab.id:
            self._active_tab_id = tab.id
            self._notify_active()
        return tab

    def add_active_listener(self, listener: TabListener) -> None:
        self._active_listeners.append(listener)

    def add_created_listener(self, listener: TabListener) -> None:
        self._created_listeners.append(listener)

    def _notify_active(self) -> None:
        for listener in list(self._active_listeners):
            listener(self.active_tab)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    @property
    def active_tab_id(self) -> str | None:
        return self._active_tab_id

    @property
    def active_tab(self) -> DocumentTab | None:
        return self._tabs.get(self._active_tab_id) if self._active_tab_id else None

    def resolve_tab(self, tab_id: str | None = None) -> DocumentTab:
        """Return ``tab_id``'s tab, or the active one when ``tab_id`` is omitted."""

        if tab_id is not None:
            return self.get_tab(tab_id)
        tab = self.active_tab
        if tab is None:
            raise RuntimeError("No active tab available")
        return tab

    def get_tab(self, tab_id: str) -> DocumentTab:
        """Look a tab up by id, or by the path of the file it shows."""

        tab = self._tabs.get(tab_id)
        if tab is not None:
            return tab
        resolved = _resolve(tab_id)
        for candidate in self.iter_tabs():
            if candidate.path == resolved:
                return candidate
        raise KeyError(f"Unknown tab_id: {tab_id}")

    def iter_tabs(self) -> Iterator[DocumentTab]:
        return (self._tabs[tab_id] for tab_id in list(self._order))

    def tab_ids(self) -> tuple[str, ...]:
        return tuple(self._order)

    def tab_count(self) -> int:
        return len(self._order)

    def result_views(self, source_tab_id: str) -> list[DocumentTab]:
        """Result views opened from ``source_tab_id``, oldest first."""

        return [tab for tab in self.iter_tabs() if tab.source_tab_id == source_tab_id]

    def active_document(self) -> DocumentState:
        return self.resolve_tab().document()
