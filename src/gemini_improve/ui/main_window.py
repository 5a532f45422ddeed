"""Main window hosting document tabs and the Gemini commands.

The window keeps its actions and tab bookkeeping in plain Python. Qt widgets
are only built when PySide6 is importable and a ``QApplication`` exists, so
the same object drives the desktop UI and headless tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..ai.controller import ImproveController
from ..chat.commands import CommandName, CommandRegistry
from ..editor.workspace import DocumentTab
from ..services.notifications import Notification
from ..services.settings import Settings, SettingsStore
from ..utils.file_io import write_text

QApplication: Any = None
QMainWindow: Any = None
QTabWidget: Any = None
QInputDialog: Any = None
QFileDialog: Any = None
QAction: Any = None
QFont: Any = None

try:  # pragma: no cover - PySide6 optional in CI
    from PySide6.QtGui import QAction as _QtAction, QFont as _QtFont  # type: ignore[import-not-found]
    from PySide6.QtWidgets import (
        QApplication as _QtApplication,
        QFileDialog as _QtFileDialog,
        QInputDialog as _QtInputDialog,
        QMainWindow as _QtMainWindow,
        QTabWidget as _QtTabWidget,
    )

    QApplication = _QtApplication
    QMainWindow = _QtMainWindow
    QTabWidget = _QtTabWidget
    QInputDialog = _QtInputDialog
    QFileDialog = _QtFileDialog
    QAction = _QtAction
    QFont = _QtFont
except ImportError:  # pragma: no cover - runtime fallback
    pass

_LOGGER = logging.getLogger(__name__)

WINDOW_APP_NAME = "Gemini Improve"
STATUS_TIMEOUT_MS = 8000


@dataclass(slots=True)
class WindowAction:
    """Represents a high-level action exposed through menus and shortcuts."""

    name: str
    text: str
    shortcut: Optional[str] = None
    status_tip: Optional[str] = None
    callback: Optional[Callable[[], Any]] = None

    def trigger(self) -> Any:
        """Invoke the registered callback, if available."""

        if self.callback is not None:
            return self.callback()
        return None


@dataclass(slots=True)
class MenuSpec:
    """Declarative menu definition used for headless + Qt builds."""

    name: str
    title: str
    actions: tuple[str, ...]


@dataclass(slots=True)
class WindowContext:
    """Objects the window needs from the application bootstrap."""

    settings: Settings
    controller: ImproveController
    settings_store: SettingsStore | None = None


class MainWindow:
    """Tabbed editor window wired to the Gemini command registry."""

    def __init__(self, context: WindowContext) -> None:
        self._context = context
        self._controller = context.controller
        self._workspace = context.controller.workspace
        self._registry = CommandRegistry(context.controller)
        self._actions: Dict[str, WindowAction] = self._create_actions()
        self._qt_window: Any = None
        self._qt_tabs: Any = None
        self._qt_actions: Dict[str, Any] = {}
        self._qt_tab_ids: list[str] = []
        self._shown = False

        self._workspace.add_created_listener(self._handle_tab_created)
        self._workspace.add_active_listener(self._handle_active_tab_changed)
        self._controller.notifier.add_listener(self._handle_notification)
        self._build_qt()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def actions(self) -> Dict[str, WindowAction]:
        return dict(self._actions)

    @property
    def registry(self) -> CommandRegistry:
        return self._registry

    @property
    def qt_window(self) -> Any:
        return self._qt_window

    def menu_specs(self) -> tuple[MenuSpec, ...]:
        return (
            MenuSpec(
                name="file",
                title="&File",
                actions=("file_new_tab", "file_open", "file_save", "file_close_tab"),
            ),
            MenuSpec(
                name="gemini",
                title="&Gemini",
                actions=(
                    "gemini_improve",
                    "gemini_improve_selection",
                    "gemini_display_prompt",
                    "gemini_set_prompt",
                    "gemini_set_buffer_prompt",
                ),
            ),
        )

    def trigger(self, name: str) -> Any:
        return self._actions[name].trigger()

    def open_path(self, path: Path | str) -> DocumentTab:
        tab = self._workspace.open_file(path)
        _LOGGER.info("Opened %s", tab.path)
        return tab

    def new_tab(self) -> DocumentTab:
        return self._workspace.create_tab()

    def save_active(self, path: Path | str | None = None) -> Path | None:
        """Save the active document, refusing scratch result views."""

        tab = self._workspace.active_tab
        if tab is None:
            return None
        document = tab.document()
        if not document.persistent:
            self._controller.notifier.warning("Result views are scratch buffers and cannot be saved.")
            return None
        target = Path(path) if path is not None else document.metadata.path
        if target is None:
            target = self._ask_save_path()
            if target is None:
                return None
        saved = write_text(target, document.text)
        document.metadata.path = saved
        document.dirty = False
        tab.update_title()
        self._sync_tab_title(tab)
        self._controller.notifier.info(f"Saved {saved}")
        return saved

    def close_active(self) -> DocumentTab | None:
        tab = self._workspace.active_tab
        if tab is None:
            return None
        closed = self._workspace.close_tab(tab.id)
        if self._qt_tabs is not None and closed.id in self._qt_tab_ids:
            index = self._qt_tab_ids.index(closed.id)
            self._qt_tab_ids.pop(index)
            self._qt_tabs.removeTab(index)
        return closed

    def show(self) -> None:
        self._workspace.ensure_tab()
        self._shown = True
        if self._qt_window is not None:
            self._qt_window.show()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def _create_actions(self) -> Dict[str, WindowAction]:
        shortcuts = {command: shortcut for shortcut, command in self._registry.shortcuts().items()}
        actions = (
            WindowAction("file_new_tab", "New Tab", "Ctrl+N", "Create a new untitled tab", self.new_tab),
            WindowAction("file_open", "Open…", "Ctrl+O", "Open a document from disk", self._open_dialog),
            WindowAction("file_save", "Save", "Ctrl+S", "Save the current document", self.save_active),
            WindowAction("file_close_tab", "Close Tab", "Ctrl+W", "Close the active tab", self.close_active),
            WindowAction(
                "gemini_improve",
                "Improve Document",
                shortcuts.get(CommandName.IMPROVE),
                "Send the whole document to Gemini and open the result in a new tab",
                self._registry.improve,
            ),
            WindowAction(
                "gemini_improve_selection",
                "Improve Selection",
                shortcuts.get(CommandName.IMPROVE_SELECTION),
                "Replace the selection with Gemini's improved text",
                self._registry.improve_selection,
            ),
            WindowAction(
                "gemini_display_prompt",
                "Show Prompt",
                shortcuts.get(CommandName.DISPLAY_PROMPT),
                "Display the prompt used for the current document",
                self._registry.display_prompt,
            ),
            WindowAction(
                "gemini_set_prompt",
                "Set Default Prompt…",
                None,
                "Change the default prompt",
                lambda: self._prompt_and_run(CommandName.SET_PROMPT, "Default Gemini prompt"),
            ),
            WindowAction(
                "gemini_set_buffer_prompt",
                "Set Document Prompt…",
                None,
                "Use a different prompt for the current document",
                lambda: self._prompt_and_run(CommandName.SET_BUFFER_PROMPT, "Document Gemini prompt"),
            ),
        )
        return {action.name: action for action in actions}

    def _prompt_and_run(self, command: CommandName, label: str) -> Any:
        prompts = self._controller.prompts
        if command is CommandName.SET_BUFFER_PROMPT and self._workspace.active_tab is not None:
            current = prompts.active_prompt(self._workspace.active_document()).text
        else:
            current = prompts.default_prompt
        text = self._ask_text(label, current)
        if text is None:
            return None
        return self._registry.run(command, text)

    def _open_dialog(self) -> DocumentTab | None:
        if self._qt_window is None or QFileDialog is None:
            return None
        path, _ = QFileDialog.getOpenFileName(self._qt_window, "Open document")
        if not path:
            return None
        return self.open_path(path)

    def _ask_save_path(self) -> Path | None:
        if self._qt_window is None or QFileDialog is None:
            return None
        path, _ = QFileDialog.getSaveFileName(self._qt_window, "Save document")
        return Path(path) if path else None

    def _ask_text(self, label: str, current: str) -> str | None:
        if self._qt_window is None or QInputDialog is None:
            return None
        text, accepted = QInputDialog.getText(self._qt_window, WINDOW_APP_NAME, label, text=current)
        return text if accepted else None

    # ------------------------------------------------------------------
    # Qt construction
    # ------------------------------------------------------------------
    def _build_qt(self) -> None:
        if QApplication is None or QMainWindow is None or QApplication.instance() is None:
            return

        self._qt_window = QMainWindow()
        self._qt_window.setWindowTitle(WINDOW_APP_NAME)
        self._qt_window.resize(1100, 760)
        self._qt_tabs = QTabWidget(self._qt_window)
        self._qt_tabs.setTabsClosable(True)
        self._qt_tabs.setDocumentMode(True)
        self._qt_tabs.currentChanged.connect(self._handle_qt_tab_changed)  # type: ignore[attr-defined]
        self._qt_tabs.tabCloseRequested.connect(self._handle_qt_tab_close)  # type: ignore[attr-defined]
        self._qt_window.setCentralWidget(self._qt_tabs)
        self._install_qt_menus()
        for tab in self._workspace.iter_tabs():
            self._handle_tab_created(tab)

    def _install_qt_menus(self) -> None:
        menubar = self._qt_window.menuBar()
        self._qt_actions.clear()
        for action in self._actions.values():
            qt_action = QAction(action.text, self._qt_window)
            if action.shortcut:
                qt_action.setShortcut(action.shortcut)  # type: ignore[arg-type]
            if action.status_tip:
                qt_action.setStatusTip(action.status_tip)
            qt_action.triggered.connect(action.trigger)  # type: ignore[attr-defined]
            self._qt_actions[action.name] = qt_action
        for menu_spec in self.menu_specs():
            menu = menubar.addMenu(menu_spec.title)
            for action_name in menu_spec.actions:
                qt_action = self._qt_actions.get(action_name)
                if qt_action is not None:
                    menu.addAction(qt_action)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def _handle_tab_created(self, tab: DocumentTab) -> None:
        if self._qt_tabs is None or tab.id in self._qt_tab_ids:
            return
        widget = tab.editor.qt_widget
        if widget is None:
            return
        editor = tab.editor.qt_editor
        if editor is not None and QFont is not None:
            editor.setFont(QFont(self._context.settings.font_family, self._context.settings.font_size))
        self._qt_tab_ids.append(tab.id)
        self._qt_tabs.addTab(widget, tab.title)
        tab.editor.add_text_listener(lambda _text, _state, tab=tab: self._refresh_title(tab))

    def _handle_active_tab_changed(self, tab: DocumentTab | None) -> None:
        if tab is None or self._qt_tabs is None or tab.id not in self._qt_tab_ids:
            return
        index = self._qt_tab_ids.index(tab.id)
        if self._qt_tabs.currentIndex() != index:
            self._qt_tabs.setCurrentIndex(index)

    def _handle_qt_tab_changed(self, index: int) -> None:
        if 0 <= index < len(self._qt_tab_ids):
            self._workspace.set_active_tab(self._qt_tab_ids[index])

    def _handle_qt_tab_close(self, index: int) -> None:
        if not 0 <= index < len(self._qt_tab_ids):
            return
        tab_id = self._qt_tab_ids.pop(index)
        self._qt_tabs.removeTab(index)
        self._workspace.close_tab(tab_id)

    def _handle_notification(self, notification: Notification) -> None:
        if self._qt_window is None:
            return
        self._qt_window.statusBar().showMessage(notification.render(), STATUS_TIMEOUT_MS)

    def _refresh_title(self, tab: DocumentTab) -> None:
        if tab.readonly:
            return
        tab.update_title()
        self._sync_tab_title(tab)

    def _sync_tab_title(self, tab: DocumentTab) -> None:
        if self._qt_tabs is None or tab.id not in self._qt_tab_ids:
            return
        self._qt_tabs.setTabText(self._qt_tab_ids.index(tab.id), tab.title)


__all__ = ["MainWindow", "MenuSpec", "WindowAction", "WindowContext"]
