"""Logging setup for gemini-improve.

Records go to ``~/.gemini_improve/logs/gemini_improve.log`` (or the directory
named by ``GEMINI_IMPROVE_LOG_DIR``) and optionally to stderr. Every handler
carries a :class:`SecretFilter` so API keys embedded in request URLs never
reach disk.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import re
from pathlib import Path

__all__ = ["SecretFilter", "get_log_path", "redact", "setup_logging"]

LOG_DIR_ENV = "GEMINI_IMPROVE_LOG_DIR"
LOG_FILENAME = "gemini_improve.log"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DEFAULT_LOG_DIR = Path.home() / ".gemini_improve" / "logs"
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "qasync", "httpx", "httpcore")
_KEY_PATTERN = re.compile(r"((?:[?&]key=)|(?:x-goog-api-key[\"']?\s*[:=]\s*[\"']?))[^&\s\"']+", re.IGNORECASE)

_log_path: Path | None = None


def redact(text: str) -> str:
    """Mask ``key=...`` query values and API key headers in ``text``."""

    return _KEY_PATTERN.sub(r"\1***", text)


class SecretFilter(logging.Filter):
    """Rewrites records whose rendered message contains an API key."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Install the file handler (and stderr handler when ``console``) on the root logger."""

    global _log_path
    if _log_path is not None and not force:
        return _log_path

    directory = Path(log_dir or os.environ.get(LOG_DIR_ENV) or _DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / LOG_FILENAME

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    ]
    if console:
        handlers.append(logging.StreamHandler())
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(SecretFilter())

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    # Transport libraries log request URLs at INFO.
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _log_path = path
    return path


def get_log_path() -> Path | None:
    """Return the active log file, or ``None`` before :func:`setup_logging` ran."""

    return _log_path
