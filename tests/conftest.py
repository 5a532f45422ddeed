"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from gemini_improve.editor.workspace import DocumentWorkspace
from gemini_improve.services.notifications import Notifier


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (
        "GEMINI_API_KEY",
        "GEMINI_IMPROVE_ENDPOINT_URL",
        "GEMINI_IMPROVE_DEFAULT_PROMPT",
        "GEMINI_IMPROVE_MAX_INPUT_LENGTH",
        "GEMINI_IMPROVE_TRANSPORT",
        "GEMINI_IMPROVE_REQUEST_TIMEOUT",
        "GEMINI_IMPROVE_DEBUG_LOGGING",
        "GEMINI_IMPROVE_API_KEY_ENV",
        "GEMINI_IMPROVE_DEBUG",
        "GEMINI_IMPROVE_SETTINGS_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GEMINI_IMPROVE_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def workspace() -> DocumentWorkspace:
    return DocumentWorkspace()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()
