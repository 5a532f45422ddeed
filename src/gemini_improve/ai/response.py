"""Decoding of ``generateContent`` response bodies into :class:`ApiResult`."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from .ai_types import ApiResult, Failure, Success
from .errors import ErrorCode

LOGGER = logging.getLogger(__name__)


def parse_response(raw_body: str) -> ApiResult:
    """Return ``Success`` with the first candidate's text or a ``Failure``.

    Never raises: decode errors, error payloads and unknown shapes all map to
    a failure value.
    """

    try:
        decoded = json.loads(raw_body)
    except (TypeError, ValueError, RecursionError) as exc:
        LOGGER.debug("Response body is not valid JSON: %s", exc)
        return Failure(
            code=ErrorCode.MALFORMED_RESPONSE,
            reason=f"malformed JSON: {exc}",
            raw_body=raw_body if isinstance(raw_body, str) else repr(raw_body),
        )

    message = _error_message(decoded)
    if message is not None:
        return Failure(code=ErrorCode.API_ERROR, reason=f"API error: {message}")

    text = _candidate_text(decoded)
    if text is not None:
        return Success(text)

    return Failure(
        code=ErrorCode.UNEXPECTED_RESPONSE_SHAPE,
        reason="unexpected response shape",
        raw_body=raw_body,
    )


def _field(node: Any, key: str) -> Any | None:
    if isinstance(node, Mapping):
        return node.get(key)
    return None


def _first(node: Any) -> Any | None:
    if isinstance(node, Sequence) and not isinstance(node, (str, bytes)) and node:
        return node[0]
    return None


def _error_message(decoded: Any) -> str | None:
    error = _field(decoded, "error")
    if error is None:
        return None
    message = _field(error, "message")
    if isinstance(message, str) and message:
        return message
    for fallback_key in ("status", "code"):
        fallback = _field(error, fallback_key)
        if fallback not in (None, ""):
            return str(fallback)
    if isinstance(error, str) and error:
        return error
    return None


def _candidate_text(decoded: Any) -> str | None:
    candidate = _first(_field(decoded, "candidates"))
    content = _field(candidate, "content")
    part = _first(_field(content, "parts"))
    text = _field(part, "text")
    if isinstance(text, str):
        return text
    return None


__all__ = ["parse_response"]
