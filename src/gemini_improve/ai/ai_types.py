"""Shared typing contracts for the request/response pipeline."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from .errors import ErrorCode, ImproveError


@dataclass(slots=True, frozen=True)
class RequestPayload:
    """Single instruction+text blob shaped for the ``generateContent`` API."""

    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"contents": [{"parts": [{"text": self.text}]}]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass(slots=True, frozen=True)
class Success:
    """Generated text extracted from a well-formed response."""

    text: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(slots=True, frozen=True)
class Failure:
    """Terminal failure for one invocation.

    ``raw_body`` is only populated for malformed or unexpectedly shaped
    responses so the body can be shown to the user.
    """

    code: str
    reason: str
    raw_body: str | None = None

    @property
    def ok(self) -> bool:
        return False

    @property
    def has_raw_body(self) -> bool:
        return self.raw_body is not None

    @classmethod
    def from_error(cls, error: ImproveError) -> Failure:
        describe = getattr(error, "describe", None)
        reason = describe() if callable(describe) else error.message
        raw_body = error.details.get("raw_body") if error.error_code in ErrorCode.WITH_RAW_BODY else None
        return cls(code=error.error_code, reason=reason, raw_body=raw_body)


ApiResult = Union[Success, Failure]


class RequestState(str, Enum):
    """Lifecycle of a single improvement invocation."""

    IDLE = "idle"
    REQUEST_BUILT = "request_built"
    SENT = "sent"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ImproveMode(str, Enum):
    """How a successful result is delivered back to the editor."""

    REPLACE = "replace"
    NEW_VIEW = "new_view"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


_TRANSITIONS: dict[RequestState, frozenset[RequestState]] = {
    RequestState.IDLE: frozenset({RequestState.REQUEST_BUILT, RequestState.FAILED}),
    RequestState.REQUEST_BUILT: frozenset({RequestState.SENT, RequestState.FAILED}),
    RequestState.SENT: frozenset({RequestState.SUCCEEDED, RequestState.FAILED}),
    RequestState.SUCCEEDED: frozenset({RequestState.IDLE}),
    RequestState.FAILED: frozenset({RequestState.IDLE}),
}


@dataclass(slots=True)
class ImproveRequest:
    """Bookkeeping for one invocation as it moves through its states."""

    mode: ImproveMode
    tab_id: str | None = None
    state: RequestState = RequestState.IDLE
    result: ApiResult | None = None
    truncated: bool = False
    started_at: datetime = field(default_factory=_utcnow)
    finished_at: datetime | None = None
    transitions: list[RequestState] = field(default_factory=list)

    def advance(self, state: RequestState) -> None:
        allowed = _TRANSITIONS[self.state]
        if state not in allowed:
            raise ValueError(f"Invalid request transition {self.state.value} -> {state.value}")
        self.transitions.append(self.state)
        self.state = state
        if state in (RequestState.SUCCEEDED, RequestState.FAILED):
            self.finished_at = _utcnow()

    def finish(self, result: ApiResult) -> None:
        """Record ``result`` and walk the request back to idle."""

        self.result = result
        self.advance(RequestState.SUCCEEDED if isinstance(result, Success) else RequestState.FAILED)
        self.advance(RequestState.IDLE)

    @property
    def outcome(self) -> RequestState | None:
        """Return the terminal state reached, if any."""

        for state in reversed(self.transitions + [self.state]):
            if state in (RequestState.SUCCEEDED, RequestState.FAILED):
                return state
        return None


__all__ = [
    "ApiResult",
    "Failure",
    "ImproveMode",
    "ImproveRequest",
    "RequestPayload",
    "RequestState",
    "Success",
]
