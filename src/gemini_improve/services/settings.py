"""Settings dataclass and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

from ..ai.client import DEFAULT_ENDPOINT_URL, TRANSPORT_CHOICES
from ..ai.payload import DEFAULT_MAX_INPUT_LENGTH
from ..ai.prompts import DEFAULT_PROMPT

__all__ = [
    "Settings",
    "SettingsStore",
    "DEFAULT_API_KEY_ENV",
    "active_env_overrides",
    "read_api_key",
    "redact_secret",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".gemini_improve"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
ENV_PREFIX = "GEMINI_IMPROVE_"
DEFAULT_API_KEY_ENV = "GEMINI_API_KEY"
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


def _parse_flag(raw: str) -> bool:
    return raw.strip().lower() in _TRUE_VALUES


# Environment variable -> (settings field, parser, description used in warnings).
_ENV_OVERRIDES: Mapping[str, tuple[str, Callable[[str], Any], str]] = {
    "GEMINI_IMPROVE_ENDPOINT_URL": ("endpoint_url", str, "string"),
    "GEMINI_IMPROVE_DEFAULT_PROMPT": ("default_prompt", str, "string"),
    "GEMINI_IMPROVE_TRANSPORT": ("transport", str, "string"),
    "GEMINI_IMPROVE_API_KEY_ENV": ("api_key_env", str, "string"),
    "GEMINI_IMPROVE_DEBUG_LOGGING": ("debug_logging", _parse_flag, "boolean"),
    "GEMINI_IMPROVE_REQUEST_TIMEOUT": ("request_timeout", float, "float"),
    "GEMINI_IMPROVE_MAX_INPUT_LENGTH": ("max_input_length", lambda raw: int(raw, 10), "integer"),
}


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    endpoint_url: str = DEFAULT_ENDPOINT_URL
    default_prompt: str = DEFAULT_PROMPT
    max_input_length: int = DEFAULT_MAX_INPUT_LENGTH
    api_key_env: str = DEFAULT_API_KEY_ENV
    transport: str = "httpx"
    request_timeout: float | None = 90.0
    curl_executable: str = "curl"
    debug_logging: bool = False
    font_family: str = "JetBrains Mono"
    font_size: int = 12

    def normalized(self) -> Settings:
        """Return a copy with mistyped or out-of-range values replaced by defaults."""

        defaults = Settings()
        updates: Dict[str, Any] = {}

        def reject(name: str, reason: str) -> None:
            fallback = getattr(defaults, name)
            LOGGER.warning("Setting %s=%r %s; using %r", name, getattr(self, name), reason, fallback)
            updates[name] = fallback

        for name in ("endpoint_url", "default_prompt", "api_key_env", "curl_executable", "font_family"):
            value = getattr(self, name)
            if not isinstance(value, str):
                reject(name, "is not a string")
            elif not value.strip():
                reject(name, "is empty")
        for name in ("max_input_length", "font_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                reject(name, "must be a positive integer")
        if not isinstance(self.debug_logging, bool):
            reject("debug_logging", "is not a boolean")
        if not isinstance(self.transport, str) or self.transport.strip().lower() not in TRANSPORT_CHOICES:
            reject("transport", f"must be one of {sorted(TRANSPORT_CHOICES)}")
        elif self.transport != self.transport.strip().lower():
            updates["transport"] = self.transport.strip().lower()
        timeout = self.request_timeout
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
                reject("request_timeout", "is not a number")
            elif timeout <= 0:
                updates["request_timeout"] = None
        return replace(self, **updates) if updates else self


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            data = _filter_fields(payload)
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            LOGGER.debug("Settings loaded from %s: %s", self._path, sorted(data))

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")

        settings = self._apply_env_overrides(settings)
        return settings.normalized()

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = asdict(settings)
        payload["version"] = _SETTINGS_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain a JSON object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {field.name for field in fields(Settings)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed or value is None:
                continue
            filtered[key] = value
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, (field_name, parse, kind) in _ENV_OVERRIDES.items():
            raw = os.environ.get(env_name)
            if raw is None:
                continue
            try:
                overrides[field_name] = parse(raw)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid %s", env_name, raw, kind)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def read_api_key(env_name: str = DEFAULT_API_KEY_ENV) -> str | None:
    """Return the API key from the environment at call time, if set."""

    value = os.environ.get(env_name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(Settings)}
    return {key: value for key, value in payload.items() if key in allowed}


def redact_secret(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        return ""
    if len(stripped) <= 4:
        return "*" * len(stripped)
    return f"{stripped[:2]}{'*' * (len(stripped) - 4)}{stripped[-2:]}"


def active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith(ENV_PREFIX))
