"""Tests for capturing documents and selections."""

from __future__ import annotations

from gemini_improve.core.ranges import TextRange
from gemini_improve.editor.selection_gateway import SelectionGateway
from gemini_improve.editor.workspace import DocumentWorkspace

from tests.helpers import open_text


def test_capture_document_covers_whole_text(workspace: DocumentWorkspace) -> None:
    tab = open_text(workspace, "first\nsecond\n")
    gateway = SelectionGateway(workspace)

    snapshot = gateway.capture_document()

    assert snapshot.tab_id == tab.id
    assert snapshot.text == "first\nsecond\n"
    assert snapshot.text_range == TextRange(0, len("first\nsecond\n"))
    assert snapshot.content_hash == tab.document().content_hash


def test_capture_selection_uses_editor_span(workspace: DocumentWorkspace) -> None:
    tab = open_text(workspace, "Hello brave new world")
    tab.editor.select((6, 15))
    gateway = SelectionGateway(workspace)

    snapshot = gateway.capture_selection(tab_id=tab.id)

    assert snapshot.text == "brave new"
    assert snapshot.text_range == TextRange(6, 15)
    assert not snapshot.is_empty


def test_capture_selection_caret_is_empty(workspace: DocumentWorkspace) -> None:
    tab = open_text(workspace, "text")
    tab.editor.select((2, 2))

    snapshot = SelectionGateway(workspace).capture_selection()

    assert snapshot.is_empty


def test_capture_targets_requested_tab(workspace: DocumentWorkspace) -> None:
    first = open_text(workspace, "first tab")
    open_text(workspace, "second tab")

    snapshot = SelectionGateway(workspace).capture_document(tab_id=first.id)

    assert snapshot.text == "first tab"


def test_snapshot_detects_later_edits(workspace: DocumentWorkspace) -> None:
    tab = open_text(workspace, "draft text")
    snapshot = SelectionGateway(workspace).capture_document()

    assert not snapshot.is_stale(tab.document())
    tab.editor.replace_range(0, 5, "final")
    assert snapshot.is_stale(tab.document())
