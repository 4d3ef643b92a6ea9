"""Translate editor-surface occurrences into interaction records."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Mapping

from ..editor.surface import (
    ChangeReason,
    SelectionChange,
    SelectionChangeKind,
    Terminal,
    TextDocument,
    TextDocumentChange,
)
from .records import (
    ChangeReasonLabel,
    ChatExchange,
    ContentChange,
    DocumentMeta,
    EventKind,
    EventRecord,
    SelectionKindLabel,
    TerminalEvent,
    TextChangeEvent,
    TextSelectionEvent,
    UserEvent,
    WindowFocus,
)
from .sink import LogSink, WriteFailed

LOGGER = logging.getLogger(__name__)

_CHANGE_REASONS: Mapping[ChangeReason, ChangeReasonLabel] = {
    ChangeReason.UNDO: "undo",
    ChangeReason.REDO: "redo",
}
_SELECTION_KINDS: Mapping[SelectionChangeKind, SelectionKindLabel] = {
    SelectionChangeKind.KEYBOARD: "keyboard",
    SelectionChangeKind.MOUSE: "mouse",
    SelectionChangeKind.COMMAND: "command",
}
_NOISE_SELECTIONS = frozenset({"\n", "\t"})


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class EventClock:
    """Millisecond wall clock that never runs backwards."""

    def __init__(self, source: Callable[[], int] = _wall_clock_ms) -> None:
        self._source = source
        self._last = 0

    def now(self) -> int:
        self._last = max(self._last, int(self._source()))
        return self._last


def is_noise_selection(text: str) -> bool:
    """Return ``True`` for selections that carry no content worth logging."""

    return not text.strip() or text in _NOISE_SELECTIONS


class EventDispatcher:
    """Normalizes raw editor callbacks into records and forwards them to a sink.

    Dispatch is synchronous and happens in the order callbacks are invoked.
    When ``sink`` is ``None`` (telemetry disabled) every callback is a no-op.
    Write failures are reported on the diagnostic logger and dropped so the
    host never sees telemetry errors.
    """

    def __init__(self, sink: LogSink | None, *, clock: EventClock | None = None) -> None:
        self._sink = sink
        self._clock = clock or EventClock()

    @property
    def enabled(self) -> bool:
        return self._sink is not None

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------
    def on_text_document_changed(self, change: TextDocumentChange) -> None:
        document = change.document
        reason = _CHANGE_REASONS.get(change.reason, "unknown")
        spans = tuple(
            ContentChange(
                range=span.range,
                range_offset=span.range_offset,
                range_length=span.range_length,
                text=span.text,
            )
            for span in change.content_changes
        )
        self._emit(
            lambda: TextChangeEvent(
                kind=EventKind.TEXT_CHANGES,
                event_name="onDidChangeTextDocument",
                timestamp=self._clock.now(),
                filename=document.file_name,
                change_reason=reason,
                content_changes=spans,
                document=_document_meta(document),
            )
        )

    def on_selection_changed(self, change: SelectionChange) -> None:
        selections = tuple(change.selections)
        if not selections:
            return
        primary = selections[0]
        if primary.is_empty:
            return
        selected_text = change.document.get_text(primary)
        if is_noise_selection(selected_text):
            return
        kind = _SELECTION_KINDS.get(change.kind, "command")
        self._emit(
            lambda: TextSelectionEvent(
                kind=EventKind.TEXT_SELECTIONS,
                event_name="onDidChangeTextEditorSelection",
                timestamp=self._clock.now(),
                filename=change.document.file_name,
                selection_kind=kind,
                selections=selections,
                selected_text=selected_text,
            )
        )

    # ------------------------------------------------------------------
    # Files and documents
    # ------------------------------------------------------------------
    def on_files_created(self, paths: Iterable[str]) -> None:
        self._file_operation("onDidCreateFiles", paths)

    def on_files_deleted(self, paths: Iterable[str]) -> None:
        self._file_operation("onDidDeleteFiles", paths)

    def on_document_opened(self, document: TextDocument) -> None:
        self._document_state("onDidOpenTextDocument", document)

    def on_document_closed(self, document: TextDocument) -> None:
        self._document_state("onDidCloseTextDocument", document)

    def on_document_saved(self, document: TextDocument) -> None:
        self._document_state("onDidSaveTextDocument", document)

    def on_active_editor_changed(self, document: TextDocument | None) -> None:
        if document is None:
            return
        self._document_state("onDidChangeActiveTextEditor", document)

    # ------------------------------------------------------------------
    # Window and terminals
    # ------------------------------------------------------------------
    def on_window_state_changed(self, focused: bool) -> None:
        self._emit(
            lambda: UserEvent(
                kind=EventKind.WINDOW_STATE,
                event_name="onDidChangeWindowState",
                timestamp=self._clock.now(),
                content="focused" if focused else "unfocused",
                payload=WindowFocus(focused=bool(focused)),
            )
        )

    def on_terminal_opened(self, terminal: Terminal) -> None:
        self._terminal_state("onDidOpenTerminal", terminal)

    def on_terminal_closed(self, terminal: Terminal) -> None:
        self._terminal_state("onDidCloseTerminal", terminal)

    def on_terminal_state_changed(self, terminal: Terminal) -> None:
        self._terminal_state("onDidChangeTerminalState", terminal)

    def on_active_terminal_changed(self, terminal: Terminal | None) -> None:
        if terminal is None:
            return
        self._terminal_state("onDidChangeActiveTerminal", terminal)

    # ------------------------------------------------------------------
    # Search and chat markers
    # ------------------------------------------------------------------
    def record_web_search(self, event_name: str, query: str) -> None:
        self._emit(
            lambda: UserEvent(
                kind=EventKind.WEB_SEARCH,
                event_name=event_name,
                timestamp=self._clock.now(),
                content=query,
            )
        )

    def record_chat_request(self, prompt: str, *, message_id: str, has_code: bool) -> None:
        self._emit(
            lambda: UserEvent(
                kind=EventKind.ADD_REQUEST,
                event_name="askQuestion",
                timestamp=self._clock.now(),
                content=prompt,
                payload=ChatExchange(message_id=message_id, has_code=has_code),
            )
        )

    def record_chat_response(self, text: str, *, message_id: str) -> None:
        self._emit(
            lambda: UserEvent(
                kind=EventKind.ADD_RESPONSE,
                event_name="addResponse",
                timestamp=self._clock.now(),
                content=text,
                payload=ChatExchange(message_id=message_id),
            )
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _file_operation(self, event_name: str, paths: Iterable[str]) -> None:
        first = next(iter(paths), None)
        if first is None:
            return
        self._emit(
            lambda: UserEvent(
                kind=EventKind.FILE_OPERATION,
                event_name=event_name,
                timestamp=self._clock.now(),
                content=str(first),
            )
        )

    def _document_state(self, event_name: str, document: TextDocument) -> None:
        self._emit(
            lambda: UserEvent(
                kind=EventKind.DOCUMENT_STATE,
                event_name=event_name,
                timestamp=self._clock.now(),
                content=document.file_name,
                payload=_document_meta(document),
            )
        )

    def _terminal_state(self, event_name: str, terminal: Terminal) -> None:
        self._emit(
            lambda: TerminalEvent(
                kind=EventKind.TERMINAL_STATE,
                event_name=event_name,
                timestamp=self._clock.now(),
                terminal_name=terminal.name,
                is_interacted_with=bool(terminal.is_interacted_with),
                process_id=terminal.process_id,
            )
        )

    def _emit(self, build: Callable[[], EventRecord]) -> None:
        if self._sink is None:
            return
        record = build()
        try:
            self._sink.append(record)
        except WriteFailed as exc:
            LOGGER.warning("Dropped %s event %s: %s", record.kind.value, record.event_name, exc)


def _document_meta(document: TextDocument) -> DocumentMeta:
    return DocumentMeta(
        version=int(document.version),
        line_count=int(document.line_count),
        language_id=document.language_id,
    )


__all__ = ["EventClock", "EventDispatcher", "is_noise_selection"]
