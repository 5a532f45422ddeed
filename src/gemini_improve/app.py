"""Application bootstrap helpers for the gemini-improve CLI and desktop window."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, cast, get_args, get_origin, get_type_hints

from .ai.client import ClientSettings, GeminiClient
from .ai.controller import ImproveController
from .ai.prompts import PromptState
from .core.ranges import TextRange
from .editor.workspace import DocumentWorkspace
from .services.notifications import Notification, NotificationLevel, Notifier
from .services.settings import (
    Settings,
    SettingsStore,
    active_env_overrides,
    read_api_key,
    redact_secret,
)
from .utils import logging as logging_utils
from .utils.file_io import write_text

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_LOGGER = logging.getLogger(__name__)
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


def configure_logging(debug: bool = False, *, force: bool = False, console: bool = True) -> None:
    """Configure structured logging for the application."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, force=force, console=console)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))
    _install_qt_message_handler()


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def build_client(settings: Settings, *, debug_logging: bool = False) -> GeminiClient:
    """Construct the API client from the effective settings."""

    client_settings = ClientSettings(
        endpoint_url=settings.endpoint_url,
        transport=settings.transport,
        request_timeout=settings.request_timeout,
        curl_executable=settings.curl_executable,
        debug_logging=debug_logging or settings.debug_logging,
    )
    return GeminiClient(client_settings)


def build_controller(
    settings: Settings,
    *,
    client: Any | None = None,
    workspace: DocumentWorkspace | None = None,
    notifier: Notifier | None = None,
    debug_logging: bool = False,
) -> ImproveController:
    """Wire settings, client and workspace into an :class:`ImproveController`."""

    return ImproveController(
        client or build_client(settings, debug_logging=debug_logging),
        workspace or DocumentWorkspace(),
        prompts=PromptState(settings.default_prompt),
        settings=settings,
        notifier=notifier or Notifier(),
        credential_provider=lambda: read_api_key(settings.api_key_env),
    )


def create_qapp(settings: Settings) -> QtRuntime:
    """Create a qasync-powered QApplication instance."""

    try:  # Local import to avoid mandatory PySide6 dependency at import time.
        from PySide6.QtWidgets import QApplication
    except ImportError as exc:  # pragma: no cover - depends on desktop stack
        raise RuntimeError(
            "PySide6 must be installed to launch the gemini-improve window "
            "(pip install 'gemini-improve[ui]')."
        ) from exc

    try:
        from qasync import QEventLoop
    except ImportError as exc:  # pragma: no cover - depends on env setup
        raise RuntimeError("qasync is required to run the async Qt event loop.") from exc

    os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")
    app = cast(Any, QApplication.instance() or QApplication(sys.argv))
    app.setApplicationName("gemini-improve")
    app.setApplicationDisplayName("Gemini Improve")

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    try:
        app.aboutToQuit.connect(loop.stop)  # type: ignore[attr-defined]
    except AttributeError:  # pragma: no cover - in case of mock QApplication
        pass
    _LOGGER.debug("Qt runtime ready (font=%s %spt)", settings.font_family, settings.font_size)
    return QtRuntime(app=app, loop=loop)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the `gemini-improve` console script."""

    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command == "improve" and args.write and args.selection is None:
        parser.error("--write requires --selection")
    if args.command == "improve" and args.prompt is not None and not args.prompt.strip():
        parser.error("--prompt must not be empty. Usage: --prompt <your new prompt>")

    debug = _env_flag("GEMINI_IMPROVE_DEBUG", default=False)
    configure_logging(debug, console=args.command == "gui")

    settings_path = args.settings_path or os.environ.get("GEMINI_IMPROVE_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return EXIT_USAGE

    overrides_mapping: Dict[str, Any] | None = cli_overrides or None
    settings = load_settings(resolved_path, store=settings_store, overrides=overrides_mapping)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return EXIT_OK

    if settings.debug_logging and not debug:
        configure_logging(True, force=True, console=args.command == "gui")
        debug = True

    if args.command == "improve":
        return asyncio.run(_run_improve(args, settings, debug_logging=debug))
    if args.command == "gui":
        return _run_gui(args, settings, settings_store, debug_logging=debug)
    parser.print_usage(sys.stderr)
    return EXIT_USAGE


async def _run_improve(
    args: argparse.Namespace,
    settings: Settings,
    *,
    client: Any | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    debug_logging: bool = False,
) -> int:
    """Improve one file from the command line."""

    out = stdout or sys.stdout
    err = stderr or sys.stderr
    notifier = Notifier()
    notifier.add_listener(lambda notification: _echo_notification(notification, err))
    workspace = DocumentWorkspace()
    owned_client = client is None
    active_client = client or build_client(settings, debug_logging=debug_logging)
    controller = build_controller(
        settings, client=active_client, workspace=workspace, notifier=notifier
    )
    path = Path(args.path).expanduser()
    try:
        try:
            tab = workspace.open_file(path)
        except (OSError, UnicodeDecodeError) as exc:
            print(f"Unable to read {path}: {exc}", file=err)
            return EXIT_FAILED
        if args.prompt:
            controller.prompts.set_document(tab.document(), args.prompt)

        if args.selection is None:
            delivery = await controller.improve_document(tab.id)
            if delivery is None:
                return EXIT_FAILED
            out.write(workspace.get_tab(delivery.tab_id).editor.text)
            out.write("\n")
            return EXIT_OK

        tab.editor.select(args.selection)
        delivery = await controller.improve_selection(tab.id)
        if delivery is None:
            return EXIT_FAILED
        updated = tab.editor.text
        if args.write:
            write_text(path, updated)
            _LOGGER.info("Wrote improved selection back to %s", path)
        else:
            out.write(updated)
            out.write("\n")
        return EXIT_OK
    finally:
        if owned_client:
            await active_client.aclose()


def _run_gui(
    args: argparse.Namespace,
    settings: Settings,
    settings_store: SettingsStore,
    *,
    debug_logging: bool = False,
) -> int:
    runtime = create_qapp(settings)
    from .ui.main_window import MainWindow, WindowContext

    controller = build_controller(settings, debug_logging=debug_logging)
    window = MainWindow(
        WindowContext(settings=settings, controller=controller, settings_store=settings_store)
    )
    for path in args.paths:
        window.open_path(path)
    window.show()

    loop = runtime.loop
    try:
        loop.run_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        with contextlib.suppress(RuntimeError):
            loop.run_until_complete(_shutdown_controller(controller))
        _drain_event_loop(loop)
        loop.close()
    return EXIT_OK


def _echo_notification(notification: Notification, stream: TextIO) -> None:
    prefix = "" if notification.level is NotificationLevel.INFO else f"{notification.level.value}: "
    stream.write(f"{prefix}{notification.render()}\n")


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Let requests still in flight deliver their results, then close async generators."""

    if loop.is_closed():
        return
    pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
    try:
        if pending:
            _LOGGER.debug("Waiting for %s request task(s) before shutdown.", len(pending))
            loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        loop.run_until_complete(loop.shutdown_asyncgens())
    except RuntimeError as exc:  # pragma: no cover - loop already stopped
        _LOGGER.debug("Unable to drain asyncio loop: %s", exc)


async def _shutdown_controller(controller: ImproveController | None) -> None:
    """Wait for scheduled requests and close the client's network resources."""

    if controller is None:
        return
    await controller.wait_idle()
    close = getattr(controller.client, "aclose", None)
    if close is None:
        return
    try:
        await close()
    except Exception as exc:  # pragma: no cover - shutdown logging only
        _LOGGER.debug("Client shutdown failed: %s", exc)


def _install_qt_message_handler() -> None:
    """Send Qt's own warnings to the ``PySide6`` logger instead of stderr."""

    try:
        from PySide6.QtCore import QtMsgType, qInstallMessageHandler
    except ImportError:  # pragma: no cover - PySide6 optional during tests
        return

    levels = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }
    qt_logger = logging.getLogger("PySide6")

    def _handler(mode, _context, message):  # type: ignore[no-untyped-def]
        qt_logger.log(levels.get(mode, logging.INFO), message)

    qInstallMessageHandler(_handler)



def _selection_arg(value: str) -> TextRange:
    try:
        return TextRange.from_value(value)
    except (TypeError, ValueError) as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gemini-improve",
        add_help=True,
        description="Improve text with the Gemini generateContent API.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.gemini_improve/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    improve = subparsers.add_parser("improve", help="Improve a file or a range within it.")
    improve.add_argument("path", metavar="PATH", help="Text file to improve.")
    improve.add_argument(
        "--selection",
        metavar="START:END",
        type=_selection_arg,
        help="Character range to improve in place instead of the whole file.",
    )
    improve.add_argument(
        "--write",
        action="store_true",
        help="Write the updated file back to PATH (requires --selection).",
    )
    improve.add_argument("--prompt", metavar="TEXT", help="Instruction to use for this file only.")

    gui = subparsers.add_parser("gui", help="Open the desktop editor window.")
    gui.add_argument("paths", metavar="PATH", nargs="*", help="Files to open on launch.")
    return parser


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target, optional = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if optional and normalized.lower() in {"none", "null"}:
        return None
    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    return normalized


def _resolve_annotation(annotation: Any) -> tuple[Any, bool]:
    origin = get_origin(annotation)
    if origin is None:
        return annotation, False
    args = get_args(annotation)
    optional = type(None) in args
    remaining = [arg for arg in args if arg is not type(None)]
    if not remaining:
        return origin, optional
    return remaining[0], optional


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    api_key = read_api_key(settings.api_key_env) or ""
    metadata = {
        "path": str(store.path),
        "api_key": redact_secret(api_key),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": active_env_overrides(),
        "log_path": str(logging_utils.get_log_path() or ""),
    }
    output = {"settings": payload, "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")


if __name__ == "__main__":  # pragma: no cover - manual launch
    raise SystemExit(main())
