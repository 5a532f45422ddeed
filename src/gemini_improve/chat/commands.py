"""Editor commands and their default key bindings."""

from __future__ import annotations

import asyncio
import logging
import shlex
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping

from ..ai.controller import ImproveController
from ..ai.prompts import ActivePrompt
from ..editor.document_model import DocumentState
from ..editor.result_sink import Delivery

LOGGER = logging.getLogger(__name__)


class CommandName(str, Enum):
    """Names under which the commands are exposed to the editor."""

    IMPROVE = "GeminiImprove"
    IMPROVE_SELECTION = "GeminiImproveSelection"
    SET_PROMPT = "GeminiSetPrompt"
    SET_BUFFER_PROMPT = "GeminiSetBufferPrompt"
    DISPLAY_PROMPT = "GeminiDisplayPrompt"


@dataclass(slots=True, frozen=True)
class CommandBinding:
    """Default key sequences that trigger a command."""

    command: CommandName
    description: str
    keymap: str | None = None
    shortcut: str | None = None


@dataclass(slots=True, frozen=True)
class ParsedCommand:
    """Command line split into the command and its free-text argument."""

    command: CommandName
    argument: str
    raw: str


DEFAULT_BINDINGS: tuple[CommandBinding, ...] = (
    CommandBinding(
        CommandName.IMPROVE,
        "Improve the whole document with Gemini (new tab)",
        keymap="<leader>gi",
        shortcut="Ctrl+Alt+I",
    ),
    CommandBinding(
        CommandName.IMPROVE_SELECTION,
        "Improve the selected text with Gemini",
        keymap="<leader>gs",
        shortcut="Ctrl+Alt+S",
    ),
    CommandBinding(
        CommandName.DISPLAY_PROMPT,
        "Display the current Gemini prompt",
        keymap="<leader>gd",
        shortcut="Ctrl+Alt+D",
    ),
    CommandBinding(CommandName.SET_PROMPT, "Set the default Gemini prompt"),
    CommandBinding(CommandName.SET_BUFFER_PROMPT, "Set a Gemini prompt for the current document"),
)

_COMMAND_PREFIXES = (":",)
_COMMAND_LOOKUP: Mapping[str, CommandName] = {name.value.lower(): name for name in CommandName}


def parse_command(text: str) -> ParsedCommand:
    """Parse ``:GeminiSetPrompt some prompt`` style command lines."""

    normalized = (text or "").strip()
    for prefix in _COMMAND_PREFIXES:
        if normalized.startswith(prefix):
            normalized = normalized[len(prefix) :].lstrip()
    if not normalized:
        raise ValueError("Command line is empty")
    verb, _, remainder = normalized.partition(" ")
    command = _COMMAND_LOOKUP.get(verb.lower())
    if command is None:
        raise ValueError(f"Unknown command '{verb}'")
    return ParsedCommand(command=command, argument=_unquote(remainder.strip()), raw=normalized)


def _unquote(argument: str) -> str:
    """Strip one pair of shell quotes wrapping the whole argument."""

    if len(argument) < 2 or argument[0] != argument[-1] or argument[0] not in "'\"":
        return argument
    try:
        parts = shlex.split(argument, posix=True)
    except ValueError:
        return argument
    return parts[0] if len(parts) == 1 else argument


class CommandRegistry:
    """Dispatches editor commands to the controller and prompt state."""

    def __init__(
        self,
        controller: ImproveController,
        *,
        bindings: tuple[CommandBinding, ...] = DEFAULT_BINDINGS,
    ) -> None:
        self._controller = controller
        self._bindings = bindings
        self._handlers: Dict[CommandName, Callable[[str], Any]] = {
            CommandName.IMPROVE: lambda _arg: self.improve(),
            CommandName.IMPROVE_SELECTION: lambda _arg: self.improve_selection(),
            CommandName.SET_PROMPT: self.set_prompt,
            CommandName.SET_BUFFER_PROMPT: self.set_buffer_prompt,
            CommandName.DISPLAY_PROMPT: lambda _arg: self.display_prompt(),
        }

    @property
    def bindings(self) -> tuple[CommandBinding, ...]:
        return self._bindings

    def keymap(self) -> dict[str, CommandName]:
        return {binding.keymap: binding.command for binding in self._bindings if binding.keymap}

    def shortcuts(self) -> dict[str, CommandName]:
        return {binding.shortcut: binding.command for binding in self._bindings if binding.shortcut}

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def execute(self, text: str) -> Any:
        """Parse and run a command line, returning the handler's result."""

        parsed = parse_command(text)
        LOGGER.debug("Executing command %s", parsed.command.value)
        return self.run(parsed.command, parsed.argument)

    def run(self, command: CommandName | str, argument: str = "") -> Any:
        name = CommandName(command)
        return self._handlers[name](argument)

    def trigger_keymap(self, keys: str) -> Any:
        command = self.keymap().get(keys)
        if command is None:
            raise KeyError(f"No command bound to {keys}")
        return self.run(command)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def improve(self, tab_id: str | None = None) -> asyncio.Task[Delivery | None]:
        return self._controller.schedule_document(tab_id)

    def improve_selection(self, tab_id: str | None = None) -> asyncio.Task[Delivery | None]:
        return self._controller.schedule_selection(tab_id)

    def set_prompt(self, prompt: str) -> str | None:
        """Replace the default prompt used by documents without an override."""

        notifier = self._controller.notifier
        if not (prompt or "").strip():
            notifier.warning(f"Usage: :{CommandName.SET_PROMPT.value} <your new prompt>")
            return None
        value = self._controller.prompts.set_default(prompt)
        notifier.info(f"Default Gemini prompt set to: {value}")
        return value

    def set_buffer_prompt(self, prompt: str, tab_id: str | None = None) -> str | None:
        """Attach ``prompt`` to the active document only."""

        notifier = self._controller.notifier
        if not (prompt or "").strip():
            notifier.warning(f"Usage: :{CommandName.SET_BUFFER_PROMPT.value} <your new prompt>")
            return None
        document = self._document(tab_id)
        if document is None:
            notifier.error("No document is open to attach a prompt to.")
            return None
        value = self._controller.prompts.set_document(document, prompt)
        notifier.info(f"Buffer-local Gemini prompt set to: {value}")
        return value

    def display_prompt(self, tab_id: str | None = None) -> ActivePrompt:
        active = self._controller.prompts.active_prompt(self._document(tab_id))
        self._controller.notifier.info(active.describe())
        return active

    def _document(self, tab_id: str | None) -> DocumentState | None:
        workspace = self._controller.workspace
        if tab_id is None and workspace.active_tab is None:
            return None
        return workspace.resolve_tab(tab_id).document()


__all__ = [
    "CommandBinding",
    "CommandName",
    "CommandRegistry",
    "DEFAULT_BINDINGS",
    "ParsedCommand",
    "parse_command",
]
