"""UI package holding the desktop window."""

from .main_window import MainWindow, MenuSpec, WindowAction, WindowContext

__all__ = ["MainWindow", "MenuSpec", "WindowAction", "WindowContext"]
