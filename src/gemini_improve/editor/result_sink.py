"""Delivery of generated text back into the workspace."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..ai.ai_types import ApiResult, Failure, ImproveMode
from ..core.ranges import TextRange
from ..services.notifications import Notifier
from .document_model import DocumentMetadata, DocumentState, split_lines
from .workspace import DocumentTab, DocumentWorkspace

LOGGER = logging.getLogger(__name__)

RESULT_VIEW_TITLE = "Gemini result"
RESULT_VIEW_LANGUAGE = "markdown"


@dataclass(slots=True, frozen=True)
class Delivery:
    """Where a successful result ended up."""

    mode: ImproveMode
    tab_id: str
    text_range: TextRange


class ResultSink:
    """Writes results into an existing range or a new read-only view."""

    def __init__(self, workspace: DocumentWorkspace, notifier: Notifier) -> None:
        self._workspace = workspace
        self._notifier = notifier

    def replace(self, tab_id: str, text_range: TextRange, text: str) -> Delivery:
        """Replace exactly ``text_range`` in ``tab_id`` with ``text``."""

        tab = self._workspace.get_tab(tab_id)
        inserted = tab.editor.replace_lines(text_range.start, text_range.end, split_lines(text))
        tab.update_title()
        LOGGER.debug(
            "Replaced range %s-%s in tab %s with %s characters",
            text_range.start,
            text_range.end,
            tab_id,
            inserted.length,
        )
        return Delivery(mode=ImproveMode.REPLACE, tab_id=tab_id, text_range=inserted)

    def open_view(
        self, text: str, *, title: str = RESULT_VIEW_TITLE, source_tab_id: str | None = None
    ) -> Delivery:
        """Open ``text`` in a new scratch tab that is read-only and never saved."""

        document = DocumentState.from_lines(
            split_lines(text),
            metadata=DocumentMetadata(path=None, language=RESULT_VIEW_LANGUAGE),
            persistent=False,
        )
        tab: DocumentTab = self._workspace.create_tab(
            document=document, title=title, readonly=True, source_tab_id=source_tab_id
        )
        LOGGER.debug("Opened result view %s (%s characters)", tab.id, len(document.text))
        return Delivery(mode=ImproveMode.NEW_VIEW, tab_id=tab.id, text_range=TextRange(0, len(document.text)))

    def deliver(
        self,
        result: ApiResult,
        *,
        mode: ImproveMode,
        tab_id: str | None = None,
        text_range: TextRange | None = None,
    ) -> Delivery | None:
        """Apply ``result`` for ``mode`` and notify the user of the outcome."""

        if isinstance(result, Failure):
            self.report_failure(result)
            return None
        if mode is ImproveMode.REPLACE:
            if tab_id is None or text_range is None:
                raise ValueError("Replace mode requires a tab_id and text_range")
            delivery = self.replace(tab_id, text_range, result.text)
            self._notifier.info("Selected text improved!")
        else:
            delivery = self.open_view(result.text, source_tab_id=tab_id)
            self._notifier.info("Text improved and opened in a new tab!")
        return delivery

    def report_failure(self, failure: Failure) -> None:
        self._notifier.error(failure.reason, detail=failure.raw_body)


__all__ = ["Delivery", "ResultSink", "RESULT_VIEW_TITLE"]
