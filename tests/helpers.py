"""Shared test helpers and stub classes."""

from __future__ import annotations

import asyncio
from typing import Callable

from gemini_improve.ai.ai_types import ApiResult, RequestPayload, Success
from gemini_improve.editor.document_model import DocumentState
from gemini_improve.editor.workspace import DocumentTab, DocumentWorkspace


class FakeClient:
    """Records every payload and answers with queued or computed results."""

    def __init__(
        self,
        *results: ApiResult,
        responder: Callable[[RequestPayload], ApiResult] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._results = list(results)
        self._responder = responder
        self._error = error
        self.calls: list[tuple[RequestPayload, str | None, str | None]] = []
        self.closed = False

    async def send(
        self,
        payload: RequestPayload,
        api_key: str | None,
        endpoint_url: str | None = None,
    ) -> ApiResult:
        self.calls.append((payload, api_key, endpoint_url))
        await asyncio.sleep(0)
        if self._error is not None:
            raise self._error
        if self._responder is not None:
            return self._responder(payload)
        if self._results:
            return self._results.pop(0)
        return Success("improved")

    async def aclose(self) -> None:
        self.closed = True


def open_text(workspace: DocumentWorkspace, text: str, *, title: str | None = None) -> DocumentTab:
    """Create a tab holding ``text`` without touching the filesystem."""

    return workspace.create_tab(document=DocumentState(text=text), title=title)
