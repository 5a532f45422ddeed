"""Async client for the Gemini ``generateContent`` endpoint."""

from __future__ import annotations

import asyncio
import inspect
import logging
import shutil
from dataclasses import dataclass, field
from typing import Mapping, Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from .ai_types import ApiResult, Failure, RequestPayload
from .errors import ErrorCode, MissingCredentialError, TransportError
from .response import parse_response

LOGGER = logging.getLogger(__name__)

DEFAULT_ENDPOINT_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent"
)
JSON_HEADERS: Mapping[str, str] = {"Content-Type": "application/json"}
TRANSPORT_CHOICES: tuple[str, ...] = ("httpx", "curl")


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the client."""

    endpoint_url: str = DEFAULT_ENDPOINT_URL
    transport: str = "httpx"
    request_timeout: float | None = 90.0
    curl_executable: str = "curl"
    debug_logging: bool = False


@dataclass(slots=True)
class TransportResponse:
    """Body collected from one completed request."""

    body: str
    status_code: int | None = None
    stderr: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_success_status(self) -> bool:
        return self.status_code is None or 200 <= self.status_code < 300


class Transport(Protocol):
    """Issues a single POST and returns once the response is complete."""

    async def post(self, url: str, body: str, headers: Mapping[str, str]) -> TransportResponse:
        ...

    async def aclose(self) -> None:
        ...


class HttpxTransport:
    """Transport backed by :class:`httpx.AsyncClient`."""

    def __init__(
        self,
        *,
        timeout: float | None = 90.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def post(self, url: str, body: str, headers: Mapping[str, str]) -> TransportResponse:
        try:
            response = await self._client.post(url, content=body.encode("utf-8"), headers=dict(headers))
        except httpx.HTTPError as exc:
            raise TransportError(message=_describe_http_error(exc)) from exc
        text = response.text
        if not response.is_success and not text.strip():
            raise TransportError(
                message=response.reason_phrase or "request failed",
                status_code=response.status_code,
            )
        return TransportResponse(
            body=text,
            status_code=response.status_code,
            headers=dict(response.headers),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class CurlTransport:
    """Transport that shells out to ``curl`` and reads its output pipes.

    The JSON body is written to curl's stdin so the payload never appears in
    the process argument list.
    """

    def __init__(self, *, executable: str = "curl", timeout: float | None = None) -> None:
        self._executable = executable
        self._timeout = timeout

    def command(self, url: str, headers: Mapping[str, str]) -> list[str]:
        cmd = [self._executable, "-sS", "-X", "POST"]
        for name, value in headers.items():
            cmd.extend(["-H", f"{name}: {value}"])
        if self._timeout is not None:
            cmd.extend(["--max-time", f"{self._timeout:g}"])
        cmd.extend(["--data-binary", "@-", url])
        return cmd

    async def post(self, url: str, body: str, headers: Mapping[str, str]) -> TransportResponse:
        if shutil.which(self._executable) is None:
            raise TransportError(message=f"{self._executable} executable not found")
        cmd = self.command(url, headers)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise TransportError(message=f"failed to start {self._executable}: {exc}") from exc
        stdout, stderr = await process.communicate(body.encode("utf-8"))
        exit_code = process.returncode
        stdout_text = stdout.decode("utf-8", errors="replace")
        stderr_text = stderr.decode("utf-8", errors="replace")
        if exit_code != 0:
            raise TransportError(exit_code=exit_code, stderr=stderr_text)
        return TransportResponse(body=stdout_text, stderr=stderr_text)

    async def aclose(self) -> None:
        return None


def build_transport(settings: ClientSettings) -> Transport:
    """Return the transport named by ``settings.transport``."""

    name = (settings.transport or "httpx").strip().lower()
    if name == "curl":
        return CurlTransport(executable=settings.curl_executable, timeout=settings.request_timeout)
    if name != "httpx":
        LOGGER.warning("Unknown transport %r; falling back to httpx", settings.transport)
    return HttpxTransport(timeout=settings.request_timeout)


class GeminiClient:
    """Sends one payload per call and resolves to an :data:`ApiResult`."""

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        transport: Transport | None = None,
    ) -> None:
        self._settings = settings or ClientSettings()
        self._transport = transport or build_transport(self._settings)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def send(
        self,
        payload: RequestPayload,
        api_key: str | None,
        endpoint_url: str | None = None,
    ) -> ApiResult:
        """POST ``payload`` once and classify the outcome."""

        if not api_key or not api_key.strip():
            return Failure.from_error(MissingCredentialError())
        endpoint = endpoint_url or self._settings.endpoint_url
        url = with_api_key(endpoint, api_key.strip())
        body = payload.to_json()
        LOGGER.debug("Sending %s character payload to %s", len(payload.text), endpoint)
        if self._settings.debug_logging:
            LOGGER.debug("Request payload: %s", body)

        try:
            response = await self._transport.post(url, body, JSON_HEADERS)
        except TransportError as exc:
            LOGGER.warning("Request to %s failed: %s", endpoint, exc.describe())
            return Failure.from_error(exc)

        if not response.body.strip():
            LOGGER.warning("Request to %s returned an empty body", endpoint)
            return Failure(code=ErrorCode.EMPTY_RESPONSE, reason="empty response")
        if not response.is_success_status:
            LOGGER.info("Request to %s returned HTTP %s", endpoint, response.status_code)
        return parse_response(response.body)

    async def aclose(self) -> None:
        """Release the transport's network resources."""

        close = getattr(self._transport, "aclose", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result


def with_api_key(endpoint_url: str, api_key: str) -> str:
    """Return ``endpoint_url`` with ``key=<api_key>`` added to its query."""

    parts = urlsplit(endpoint_url)
    query = [(name, value) for name, value in parse_qsl(parts.query, keep_blank_values=True) if name != "key"]
    query.append(("key", api_key))
    return urlunsplit(parts._replace(query=urlencode(query)))


def _describe_http_error(exc: httpx.HTTPError) -> str:
    detail = str(exc) or exc.__class__.__name__
    return f"{exc.__class__.__name__}: {detail}" if detail != exc.__class__.__name__ else detail


__all__ = [
    "DEFAULT_ENDPOINT_URL",
    "TRANSPORT_CHOICES",
    "ClientSettings",
    "CurlTransport",
    "GeminiClient",
    "HttpxTransport",
    "Transport",
    "TransportResponse",
    "build_transport",
    "with_api_key",
]
