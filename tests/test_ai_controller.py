"""Tests for the improvement controller flows."""

from __future__ import annotations

import asyncio

import pytest

from gemini_improve.ai.ai_types import Failure, ImproveMode, RequestPayload, RequestState, Success
from gemini_improve.ai.controller import (
    EMPTY_DOCUMENT_MESSAGE,
    EMPTY_SELECTION_MESSAGE,
    SENDING_MESSAGE,
    ImproveController,
)
from gemini_improve.ai.errors import ErrorCode
from gemini_improve.ai.prompts import DEFAULT_PROMPT, PromptState
from gemini_improve.editor.workspace import DocumentWorkspace
from gemini_improve.services.notifications import NotificationLevel, Notifier
from gemini_improve.services.settings import Settings

from tests.helpers import FakeClient, open_text


def _controller(
    workspace: DocumentWorkspace,
    notifier: Notifier,
    client: FakeClient,
    *,
    api_key: str | None = "test-key",
    settings: Settings | None = None,
) -> ImproveController:
    return ImproveController(
        client,
        workspace,
        settings=settings or Settings(endpoint_url="https://example.test/generate"),
        notifier=notifier,
        credential_provider=lambda: api_key,
    )


def _messages(notifier: Notifier) -> list[str]:
    return [item.message for item in notifier.tail()]


@pytest.mark.asyncio
async def test_improve_document_opens_result_view(workspace: DocumentWorkspace, notifier: Notifier) -> None:
    source = open_text(workspace, "first line\nsecond line")
    client = FakeClient(Success("Better first\nBetter second"))
    controller = _controller(workspace, notifier, client)

    delivery = await controller.improve_document()

    assert delivery is not None and delivery.mode is ImproveMode.NEW_VIEW
    payload, api_key, endpoint = client.calls[0]
    assert payload.text == f"{DEFAULT_PROMPT}\n\nfirst line\nsecond line"
    assert api_key == "test-key"
    assert endpoint == "https://example.test/generate"
    view = workspace.get_tab(delivery.tab_id)
    assert view.editor.text == "Better first\nBetter second"
    assert view.readonly
    assert source.editor.text == "first line\nsecond line"
    assert _messages(notifier) == [SENDING_MESSAGE, "Text improved and opened in a new tab!"]
    request = controller.history[0]
    assert request.state is RequestState.IDLE
    assert request.outcome is RequestState.SUCCEEDED
    assert request.transitions == [
        RequestState.IDLE,
        RequestState.REQUEST_BUILT,
        RequestState.SENT,
        RequestState.SUCCEEDED,
    ]


@pytest.mark.asyncio
async def test_improve_selection_replaces_only_the_selection(
    workspace: DocumentWorkspace, notifier: Notifier
) -> None:
    tab = open_text(workspace, "Hello wrld, how are you?")
    tab.editor.select((6, 10))
    client = FakeClient(Success("world"))
    controller = _controller(workspace, notifier, client)

    delivery = await controller.improve_selection()

    assert delivery is not None and delivery.mode is ImproveMode.REPLACE
    assert client.calls[0][0].text.endswith("\n\nwrld")
    assert tab.editor.text == "Hello world, how are you?"
    assert workspace.tab_count() == 1
    assert notifier.last is not None and notifier.last.message == "Selected text improved!"


@pytest.mark.asyncio
async def test_empty_inputs_send_nothing(workspace: DocumentWorkspace, notifier: Notifier) -> None:
    tab = open_text(workspace, "")
    client = FakeClient()
    controller = _controller(workspace, notifier, client)

    assert await controller.improve_document() is None
    tab.editor.set_text("some text")
    tab.editor.select((3, 3))
    assert await controller.improve_selection() is None

    assert client.calls == []
    assert controller.history == []
    assert _messages(notifier) == [EMPTY_DOCUMENT_MESSAGE, EMPTY_SELECTION_MESSAGE]


@pytest.mark.asyncio
async def test_missing_credential_is_reported_without_request(
    workspace: DocumentWorkspace, notifier: Notifier
) -> None:
    open_text(workspace, "text to improve")
    client = FakeClient()
    controller = _controller(workspace, notifier, client, api_key=None)

    assert await controller.improve_document() is None

    assert client.calls == []
    last = notifier.last
    assert last is not None and last.level is NotificationLevel.ERROR
    assert "GEMINI_API_KEY" in last.message
    request = controller.history[0]
    assert request.outcome is RequestState.FAILED
    assert isinstance(request.result, Failure)
    assert request.result.code == ErrorCode.MISSING_CREDENTIAL


@pytest.mark.asyncio
async def test_credential_read_from_environment_at_call_time(
    workspace: DocumentWorkspace, notifier: Notifier, monkeypatch: pytest.MonkeyPatch
) -> None:
    open_text(workspace, "text")
    client = FakeClient()
    controller = ImproveController(client, workspace, notifier=notifier)

    await controller.improve_document()
    assert client.calls == []

    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    await controller.improve_document()
    assert client.calls[0][1] == "from-env"


@pytest.mark.asyncio
async def test_long_input_is_truncated_with_warning_before_sending(
    workspace: DocumentWorkspace, notifier: Notifier
) -> None:
    open_text(workspace, "abcdefghij")
    client = FakeClient()
    controller = _controller(workspace, notifier, client, settings=Settings(max_input_length=4))

    await controller.improve_document()

    body = client.calls[0][0].text.split("\n\n", 1)[1]
    assert body == "abcd"
    messages = _messages(notifier)
    assert messages.index("Text too long (10 chars). Truncating to 4 characters.") < messages.index(SENDING_MESSAGE)
    assert controller.history[0].truncated


@pytest.mark.asyncio
async def test_failure_leaves_document_and_shows_raw_body(
    workspace: DocumentWorkspace, notifier: Notifier
) -> None:
    tab = open_text(workspace, "keep this")
    tab.editor.select((0, 4))
    failure = Failure(code=ErrorCode.MALFORMED_RESPONSE, reason="malformed JSON: bad", raw_body="<html>")
    controller = _controller(workspace, notifier, FakeClient(failure))

    assert await controller.improve_selection() is None

    assert tab.editor.text == "keep this"
    last = notifier.last
    assert last is not None and last.detail == "<html>"
    assert controller.history[0].outcome is RequestState.FAILED


@pytest.mark.asyncio
async def test_unexpected_exceptions_become_notifications(
    workspace: DocumentWorkspace, notifier: Notifier
) -> None:
    open_text(workspace, "text")
    controller = _controller(workspace, notifier, FakeClient(error=RuntimeError("boom")))

    assert await controller.improve_document() is None

    last = notifier.last
    assert last is not None
    assert last.level is NotificationLevel.ERROR
    assert "boom" in last.message
    request = controller.history[0]
    assert request.state is RequestState.IDLE
    assert request.outcome is RequestState.FAILED


@pytest.mark.asyncio
async def test_buffer_prompt_applies_only_to_its_document(
    workspace: DocumentWorkspace, notifier: Notifier
) -> None:
    first = open_text(workspace, "one")
    second = open_text(workspace, "two")
    client = FakeClient()
    prompts = PromptState("Default:")
    prompts.set_document(first.document(), "Local:")
    controller = ImproveController(
        client, workspace, prompts=prompts, notifier=notifier, credential_provider=lambda: "k"
    )

    await controller.improve_document(first.id)
    await controller.improve_document(second.id)

    assert [call[0].text for call in client.calls] == ["Local:\n\none", "Default:\n\ntwo"]


@pytest.mark.asyncio
async def test_concurrent_requests_are_independent(workspace: DocumentWorkspace, notifier: Notifier) -> None:
    first = open_text(workspace, "aaa bbb")
    second = open_text(workspace, "ccc ddd")
    first.editor.select((0, 3))
    second.editor.select((4, 7))

    def responder(payload: RequestPayload) -> Success:
        return Success(payload.text.rsplit("\n\n", 1)[1].upper())

    controller = _controller(workspace, notifier, FakeClient(responder=responder))

    tasks = [controller.schedule_selection(first.id), controller.schedule_selection(second.id)]
    results = await asyncio.gather(*tasks)
    await controller.wait_idle()

    assert all(result is not None for result in results)
    assert first.editor.text == "AAA bbb"
    assert second.editor.text == "ccc DDD"
    assert len(controller.history) == 2


@pytest.mark.asyncio
async def test_unknown_tab_is_reported(workspace: DocumentWorkspace, notifier: Notifier) -> None:
    controller = _controller(workspace, notifier, FakeClient())

    assert await controller.improve_document("missing") is None
    assert notifier.last is not None and notifier.last.level is NotificationLevel.ERROR


@pytest.mark.asyncio
async def test_edit_during_request_is_logged_and_range_still_replaced(
    workspace: DocumentWorkspace, notifier: Notifier, caplog: pytest.LogCaptureFixture
) -> None:
    tab = open_text(workspace, "one two three")
    tab.editor.select((4, 7))

    def responder(payload: RequestPayload) -> Success:
        tab.editor.replace_range(13, 13, "!")
        return Success("TWO")

    controller = _controller(workspace, notifier, FakeClient(responder=responder))

    with caplog.at_level("WARNING", logger="gemini_improve.ai.controller"):
        await controller.improve_selection()

    assert tab.editor.text == "one TWO three!"
    assert "changed while the request was in flight" in caplog.text


@pytest.mark.asyncio
async def test_history_keeps_only_the_most_recent_requests(workspace: DocumentWorkspace, notifier: Notifier) -> None:
    tabs = [open_text(workspace, f"text {index}") for index in range(5)]
    controller = ImproveController(
        FakeClient(),
        workspace,
        settings=Settings(endpoint_url="https://example.test/generate"),
        notifier=notifier,
        credential_provider=lambda: "test-key",
        history_limit=3,
    )

    for tab in tabs:
        await controller.improve_document(tab.id)

    assert [request.tab_id for request in controller.history] == [tab.id for tab in tabs[-3:]]
