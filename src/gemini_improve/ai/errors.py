"""Error types raised while improving text.

Each error carries a machine-readable code so failures can be reported the
same way whether they originate before a request is sent (credential, empty
input), in the transport, or while decoding the response.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar


class ErrorCode:
    """Constants for failure codes reported to the user."""

    MISSING_CREDENTIAL = "missing_credential"
    EMPTY_INPUT = "empty_input"
    TRANSPORT_ERROR = "transport_error"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"
    API_ERROR = "api_error"
    UNEXPECTED_RESPONSE_SHAPE = "unexpected_response_shape"
    INTERNAL_ERROR = "internal_error"

    # Codes whose failures keep the raw response body for display.
    WITH_RAW_BODY: ClassVar[frozenset[str]] = frozenset({MALFORMED_RESPONSE, UNEXPECTED_RESPONSE_SHAPE})


@dataclass
class ImproveError(Exception):
    """Base exception for all text improvement failures.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    severity: ClassVar[str] = "error"

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


@dataclass
class MissingCredentialError(ImproveError):
    """Raised when the API key environment variable is unset or blank."""

    error_code: str = field(default=ErrorCode.MISSING_CREDENTIAL)
    message: str = field(default="missing credential")
    details: dict[str, Any] = field(default_factory=dict)

    env_var: str | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.env_var:
            result["env_var"] = self.env_var
        return result


@dataclass
class EmptyInputError(ImproveError):
    """Raised when there is no text to send."""

    error_code: str = field(default=ErrorCode.EMPTY_INPUT)
    message: str = field(default="No text to improve.")
    details: dict[str, Any] = field(default_factory=dict)

    severity: ClassVar[str] = "info"


@dataclass
class TransportError(ImproveError):
    """Raised when the request never produced a usable response body."""

    error_code: str = field(default=ErrorCode.TRANSPORT_ERROR)
    message: str = field(default="transport error")
    details: dict[str, Any] = field(default_factory=dict)

    exit_code: int | None = field(default=None)
    status_code: int | None = field(default=None)
    stderr: str = field(default="")

    def describe(self) -> str:
        """Return ``transport error: <details>`` for display."""

        parts: list[str] = []
        if self.exit_code is not None:
            parts.append(f"exit code {self.exit_code}")
        if self.status_code is not None:
            parts.append(f"HTTP status {self.status_code}")
        base = self.message if self.message != "transport error" else ""
        if base:
            parts.append(base)
        if self.stderr.strip():
            parts.append(f"stderr: {self.stderr.strip()}")
        detail = "; ".join(parts) or "unknown failure"
        return f"transport error: {detail}"

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.exit_code is not None:
            result["exit_code"] = self.exit_code
        if self.status_code is not None:
            result["status_code"] = self.status_code
        if self.stderr:
            result["stderr"] = self.stderr
        return result


__all__ = [
    "ErrorCode",
    "ImproveError",
    "MissingCredentialError",
    "EmptyInputError",
    "TransportError",
]
