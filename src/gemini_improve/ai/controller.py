"""Controller that runs one improvement request from capture to delivery."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable, Optional, Protocol

from ..editor.result_sink import Delivery, ResultSink
from ..editor.selection_gateway import SelectionGateway, SelectionSnapshot
from ..editor.workspace import DocumentWorkspace
from ..services.notifications import Notifier
from ..services.settings import Settings, read_api_key
from .ai_types import ApiResult, Failure, ImproveMode, ImproveRequest, RequestPayload, RequestState
from .errors import ErrorCode, MissingCredentialError
from .payload import build_payload, truncate_input
from .prompts import PromptState

LOGGER = logging.getLogger(__name__)

SENDING_MESSAGE = "Sending text to Gemini API... Please wait."
EMPTY_DOCUMENT_MESSAGE = "Current buffer is empty or contains no text. Nothing to improve."
EMPTY_SELECTION_MESSAGE = "No text selected or selection is empty."
DEFAULT_HISTORY_LIMIT = 50

CredentialProvider = Callable[[], Optional[str]]


class CompletionClient(Protocol):
    """Anything able to send a payload and resolve to an :data:`ApiResult`."""

    async def send(
        self,
        payload: RequestPayload,
        api_key: str | None,
        endpoint_url: str | None = None,
    ) -> ApiResult:
        ...


class ImproveController:
    """Captures text, sends it once, and hands the outcome to the result sink.

    Every failure inside a request is converted into a notification; the
    coroutines never raise into the host event loop.
    """

    def __init__(
        self,
        client: CompletionClient,
        workspace: DocumentWorkspace,
        *,
        prompts: PromptState | None = None,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
        credential_provider: CredentialProvider | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self._client = client
        self._workspace = workspace
        self._settings = settings or Settings()
        self._prompts = prompts or PromptState(self._settings.default_prompt)
        self._notifier = notifier or Notifier()
        self._credential_provider = credential_provider or (
            lambda: read_api_key(self._settings.api_key_env)
        )
        self._gateway = SelectionGateway(workspace)
        self._sink = ResultSink(workspace, self._notifier)
        self._history: deque[ImproveRequest] = deque(maxlen=max(1, history_limit))
        self._tasks: set[asyncio.Task[Delivery | None]] = set()

    @property
    def client(self) -> CompletionClient:
        return self._client

    @property
    def prompts(self) -> PromptState:
        return self._prompts

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def workspace(self) -> DocumentWorkspace:
        return self._workspace

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def history(self) -> list[ImproveRequest]:
        """Most recent requests, oldest first; older ones are dropped past the history limit."""

        return list(self._history)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    async def improve_document(self, tab_id: str | None = None) -> Delivery | None:
        """Improve the whole document and open the result in a new view."""

        try:
            snapshot = self._gateway.capture_document(tab_id=tab_id)
        except (KeyError, RuntimeError) as exc:
            self._notifier.error(f"No document available: {exc}")
            return None
        if snapshot.is_empty:
            self._notifier.info(EMPTY_DOCUMENT_MESSAGE)
            return None
        return await self._run(snapshot, ImproveMode.NEW_VIEW)

    async def improve_selection(self, tab_id: str | None = None) -> Delivery | None:
        """Improve the current selection and replace it in place."""

        try:
            snapshot = self._gateway.capture_selection(tab_id=tab_id)
        except (KeyError, RuntimeError) as exc:
            self._notifier.error(f"No document available: {exc}")
            return None
        if snapshot.is_empty:
            self._notifier.info(EMPTY_SELECTION_MESSAGE)
            return None
        return await self._run(snapshot, ImproveMode.REPLACE)

    def schedule_document(self, tab_id: str | None = None) -> asyncio.Task[Delivery | None]:
        """Start :meth:`improve_document` on the running loop without awaiting it."""

        return self._schedule(self.improve_document(tab_id))

    def schedule_selection(self, tab_id: str | None = None) -> asyncio.Task[Delivery | None]:
        return self._schedule(self.improve_selection(tab_id))

    async def wait_idle(self) -> None:
        """Wait for every scheduled request to finish."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ------------------------------------------------------------------
    # Request pipeline
    # ------------------------------------------------------------------
    async def _run(self, snapshot: SelectionSnapshot, mode: ImproveMode) -> Delivery | None:
        request = ImproveRequest(mode=mode, tab_id=snapshot.tab_id)
        self._history.append(request)
        try:
            return await self._execute(request, snapshot)
        except Exception as exc:
            LOGGER.exception("Improve request for tab %s failed", snapshot.tab_id)
            failure = Failure(code=ErrorCode.INTERNAL_ERROR, reason=f"Unexpected error: {exc}")
            self._fail(request, failure)
            self._sink.report_failure(failure)
            return None

    async def _execute(self, request: ImproveRequest, snapshot: SelectionSnapshot) -> Delivery | None:
        api_key = self._credential_provider()
        if not api_key:
            env_var = self._settings.api_key_env
            error = MissingCredentialError(env_var=env_var)
            self._fail(request, Failure.from_error(error))
            self._notifier.error(
                f"Error: {env_var} environment variable not set. "
                "Please set it before using the plugin."
            )
            return None

        clipped = truncate_input(snapshot.text, self._settings.max_input_length)
        request.truncated = clipped.truncated
        if clipped.warning:
            self._notifier.warning(clipped.warning)

        document = self._workspace.get_tab(snapshot.tab_id).document()
        instruction = self._prompts.resolve(document)
        payload = build_payload(instruction, clipped.text)
        request.advance(RequestState.REQUEST_BUILT)

        self._notifier.info(SENDING_MESSAGE)
        request.advance(RequestState.SENT)
        result = await self._client.send(payload, api_key, self._settings.endpoint_url)
        request.finish(result)
        LOGGER.debug("Request for tab %s finished with %s", snapshot.tab_id, request.outcome)
        current = self._workspace.get_tab(snapshot.tab_id).document()
        if request.mode is ImproveMode.REPLACE and snapshot.is_stale(current):
            # The captured offsets are still used as-is.
            LOGGER.warning("Tab %s changed while the request was in flight", snapshot.tab_id)

        return self._sink.deliver(
            result,
            mode=request.mode,
            tab_id=snapshot.tab_id,
            text_range=snapshot.text_range,
        )

    @staticmethod
    def _fail(request: ImproveRequest, failure: Failure) -> None:
        if request.state is RequestState.IDLE and request.result is not None:
            return
        request.result = failure
        request.advance(RequestState.FAILED)
        request.advance(RequestState.IDLE)

    def _schedule(self, coro) -> asyncio.Task[Delivery | None]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


__all__ = [
    "CompletionClient",
    "CredentialProvider",
    "DEFAULT_HISTORY_LIMIT",
    "EMPTY_DOCUMENT_MESSAGE",
    "EMPTY_SELECTION_MESSAGE",
    "ImproveController",
    "SENDING_MESSAGE",
]
