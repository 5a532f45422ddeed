"""Reading documents into the workspace and writing improved text back."""

from __future__ import annotations

import codecs
import locale
import os
import tempfile
from pathlib import Path

__all__ = ["decode", "detect_language", "read_text", "write_text"]

_BOMS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)
_SUFFIX_LANGUAGES = {".md": "markdown", ".markdown": "markdown", ".rst": "rst"}


def decode(raw: bytes, encoding: str | None = None) -> str:
    """Decode ``raw`` and normalize every line ending to ``"\\n"``.

    Without an explicit ``encoding`` a byte-order mark wins, then UTF-8, then
    the locale encoding, and finally latin-1, which accepts any byte string.
    """

    if encoding is None:
        encoding = next((name for bom, name in _BOMS if raw.startswith(bom)), None)
    if encoding is None:
        for candidate in ("utf-8", locale.getpreferredencoding(False), "latin-1"):
            try:
                text = raw.decode(candidate)
            except (LookupError, UnicodeDecodeError):
                continue
            break
        else:  # pragma: no cover - latin-1 always decodes
            text = raw.decode("utf-8", errors="replace")
    else:
        text = raw.decode(encoding)
    text = text.lstrip("\ufeff")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def read_text(path: Path | str, *, encoding: str | None = None) -> str:
    return decode(Path(path).read_bytes(), encoding)


def write_text(path: Path | str, content: str, *, encoding: str = "utf-8") -> Path:
    """Replace ``path`` with ``content`` in one step; a crash never leaves half a file."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, scratch = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
        os.replace(scratch, target)
    except BaseException:
        Path(scratch).unlink(missing_ok=True)
        raise
    return target


def detect_language(path: Path | str | None) -> str:
    """Map a file suffix to the editor language label; unknown suffixes are ``"text"``."""

    if not path:
        return "text"
    return _SUFFIX_LANGUAGES.get(Path(path).suffix.lower(), "text")
