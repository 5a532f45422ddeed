"""Unit tests for the workspace/tab management layer."""

from __future__ import annotations

from pathlib import Path

import pytest

from gemini_improve.editor.document_model import DocumentMetadata, DocumentState
from gemini_improve.editor.workspace import DocumentWorkspace

from tests.helpers import open_text


def test_create_tab_tracks_active_and_untitled_titles(workspace: DocumentWorkspace) -> None:
    first = workspace.create_tab()
    second = workspace.create_tab(make_active=False)

    assert workspace.active_tab_id == first.id
    assert first.title == "Untitled 1"
    assert second.title == "Untitled 2"
    assert list(workspace.tab_ids()) == [first.id, second.id]


def test_close_tab_moves_active_to_neighbour(workspace: DocumentWorkspace) -> None:
    first = open_text(workspace, "a")
    second = open_text(workspace, "b")
    seen: list[str | None] = []
    workspace.add_active_listener(lambda tab: seen.append(tab.id if tab else None))

    workspace.close_tab(second.id)

    assert workspace.active_tab_id == first.id
    assert seen == [first.id]
    with pytest.raises(KeyError):
        workspace.close_tab(second.id)


def test_open_file_reuses_existing_tab(tmp_path: Path, workspace: DocumentWorkspace) -> None:
    target = tmp_path / "notes.md"
    target.write_bytes(b"line one\r\nline two\r\n")

    tab = workspace.open_file(target)
    again = workspace.open_file(str(target))

    assert again is tab
    assert tab.editor.text == "line one\nline two\n"
    assert tab.document().metadata.language == "markdown"
    assert tab.title == "notes.md"
    assert workspace.get_tab(str(target)) is tab


def test_edits_mark_persistent_documents_dirty(workspace: DocumentWorkspace) -> None:
    tab = workspace.create_tab(
        document=DocumentState(text="draft", metadata=DocumentMetadata(path=Path("draft.txt")))
    )

    tab.editor.replace_range(0, 5, "final")
    tab.update_title()

    assert tab.dirty
    assert tab.title == "*draft.txt"
    tab.editor.undo()
    assert tab.editor.text == "draft"


def test_scratch_documents_never_need_saving(workspace: DocumentWorkspace) -> None:
    tab = workspace.create_tab(document=DocumentState(text="result", persistent=False), title="Scratch", readonly=True)

    tab.editor.set_text("changed")
    tab.update_title("Scratch")

    assert not tab.document().needs_save_prompt
    assert tab.title == "Scratch"
    assert not tab.editor.can_undo
    assert tab.readonly


def test_resolve_tab_without_tabs_raises(workspace: DocumentWorkspace) -> None:
    with pytest.raises(RuntimeError):
        workspace.resolve_tab()
    assert workspace.ensure_tab() is workspace.active_tab


def test_editor_select_clamps_and_orders(workspace: DocumentWorkspace) -> None:
    tab = open_text(workspace, "abcdef")

    tab.editor.select((10, 2))

    assert tab.editor.selection_span() == (2, 6)
    assert tab.document().selection.as_tuple() == (2, 6)


def test_replace_lines_joins_on_line_separator(workspace: DocumentWorkspace) -> None:
    tab = open_text(workspace, "head\nold\ntail")

    inserted = tab.editor.replace_lines(5, 8, ["new one", "new two"])

    assert tab.editor.text == "head\nnew one\nnew two\ntail"
    assert tab.document().lines == ["head", "new one", "new two", "tail"]
    assert inserted.length == len("new one\nnew two")


def test_document_from_lines_keeps_every_line() -> None:
    document = DocumentState.from_lines(["a", "", "b"], persistent=False)

    assert document.text == "a\n\nb"
    assert document.lines == ["a", "", "b"]
    assert not document.persistent
