"""Headless tests for the main window actions."""

from __future__ import annotations

from pathlib import Path

import pytest

from gemini_improve.ai.controller import ImproveController
from gemini_improve.editor.workspace import DocumentWorkspace
from gemini_improve.services.notifications import Notifier
from gemini_improve.services.settings import Settings
from gemini_improve.ui.main_window import MainWindow, WindowContext

from tests.helpers import FakeClient


@pytest.fixture
def window(workspace: DocumentWorkspace, notifier: Notifier) -> MainWindow:
    controller = ImproveController(
        FakeClient(), workspace, notifier=notifier, credential_provider=lambda: "key"
    )
    return MainWindow(WindowContext(settings=Settings(), controller=controller))


def test_actions_expose_default_shortcuts(window: MainWindow) -> None:
    actions = window.actions

    assert actions["gemini_improve"].shortcut == "Ctrl+Alt+I"
    assert actions["gemini_improve_selection"].shortcut == "Ctrl+Alt+S"
    assert actions["gemini_display_prompt"].shortcut == "Ctrl+Alt+D"
    menu_actions = {name for spec in window.menu_specs() for name in spec.actions}
    assert menu_actions <= set(actions)


def test_show_ensures_a_tab(window: MainWindow, workspace: DocumentWorkspace) -> None:
    window.show()

    assert workspace.tab_count() == 1


@pytest.mark.asyncio
async def test_improve_action_opens_unsaveable_result(
    window: MainWindow, workspace: DocumentWorkspace, notifier: Notifier, tmp_path: Path
) -> None:
    source = tmp_path / "draft.md"
    source.write_text("draft text", encoding="utf-8")
    window.open_path(source)

    delivery = await window.trigger("gemini_improve")

    assert delivery is not None
    assert workspace.active_tab_id == delivery.tab_id
    assert window.save_active() is None
    assert notifier.last is not None
    assert notifier.last.message == "Result views are scratch buffers and cannot be saved."


def test_save_active_writes_document(window: MainWindow, workspace: DocumentWorkspace, tmp_path: Path) -> None:
    source = tmp_path / "draft.md"
    source.write_text("draft", encoding="utf-8")
    tab = window.open_path(source)
    tab.editor.replace_range(0, 5, "final")

    saved = window.save_active()

    assert saved == source.resolve()
    assert source.read_text(encoding="utf-8") == "final"
    assert not tab.dirty
    assert tab.title == "draft.md"


def test_prompt_dialog_actions_do_nothing_headless(window: MainWindow, notifier: Notifier) -> None:
    assert window.trigger("gemini_set_prompt") is None
    assert notifier.tail() == []
