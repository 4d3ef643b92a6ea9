"""Tests for interaction record encoding."""

from __future__ import annotations

import json

import pytest

from searchngen.events.records import (
    ChatExchange,
    ContentChange,
    DocumentMeta,
    EventKind,
    RecordDecodeError,
    TerminalEvent,
    TextChangeEvent,
    TextSelectionEvent,
    UserEvent,
    WindowFocus,
    decode_record,
    encode_record,
)

from tests.helpers import span


def _window_event() -> UserEvent:
    return UserEvent(
        kind=EventKind.WINDOW_STATE,
        event_name="onDidChangeWindowState",
        timestamp=1_700_000_000_000,
        content="focused",
        payload=WindowFocus(focused=True),
    )


def test_encode_record_emits_single_crlf_terminated_line() -> None:
    line = encode_record(_window_event())

    assert line.endswith("\r\n")
    assert line.count("\n") == 1
    assert json.loads(line) == {
        "logType": "windowState",
        "eventName": "onDidChangeWindowState",
        "timestamp": 1_700_000_000_000,
        "content": "focused",
        "payload": {"focused": True},
    }


def test_encode_record_escapes_newlines_inside_content() -> None:
    record = UserEvent(
        kind=EventKind.ADD_RESPONSE,
        event_name="addResponse",
        timestamp=1,
        content="line one\r\nline two",
        payload=ChatExchange(message_id="abc"),
    )

    line = encode_record(record)

    assert line.count("\r\n") == 1
    assert decode_record(line) == record


def test_text_change_records_use_camel_case_keys() -> None:
    record = TextChangeEvent(
        kind=EventKind.TEXT_CHANGES,
        event_name="onDidChangeTextDocument",
        timestamp=10,
        filename="/tmp/a.py",
        change_reason="undo",
        content_changes=(ContentChange(range=span(0, 0, 0, 3), range_offset=0, range_length=3, text="abc"),),
        document=DocumentMeta(version=3, line_count=12, language_id="python"),
    )

    data = json.loads(encode_record(record))

    assert data["changeReason"] == "undo"
    assert data["contentChanges"][0]["rangeOffset"] == 0
    assert data["contentChanges"][0]["range"]["end"] == {"line": 0, "character": 3}
    assert data["document"] == {"version": 3, "lineCount": 12, "languageId": "python"}
    assert decode_record(encode_record(record)) == record


def test_selection_and_terminal_records_decode_losslessly() -> None:
    selection = TextSelectionEvent(
        kind=EventKind.TEXT_SELECTIONS,
        event_name="onDidChangeTextEditorSelection",
        timestamp=20,
        filename="/tmp/a.py",
        selection_kind="mouse",
        selections=(span(1, 0, 1, 6), span(3, 2, 4, 0)),
        selected_text="return",
    )
    terminal = TerminalEvent(
        kind=EventKind.TERMINAL_STATE,
        event_name="onDidOpenTerminal",
        timestamp=21,
        terminal_name="zsh",
        is_interacted_with=True,
        process_id=None,
    )

    assert decode_record(encode_record(selection)) == selection
    assert decode_record(encode_record(terminal)) == terminal
    assert "processId" not in json.loads(encode_record(terminal))


def test_user_event_rejects_mismatched_payload() -> None:
    with pytest.raises(TypeError):
        UserEvent(
            kind=EventKind.WINDOW_STATE,
            event_name="onDidChangeWindowState",
            timestamp=1,
            payload=DocumentMeta(version=1, line_count=1, language_id="python"),
        )
    with pytest.raises(TypeError):
        UserEvent(
            kind=EventKind.WEB_SEARCH,
            event_name="onWebSearch",
            timestamp=1,
            payload=ChatExchange(message_id="x"),
        )


def test_user_event_rejects_specialized_kinds() -> None:
    with pytest.raises(ValueError):
        UserEvent(kind=EventKind.TEXT_CHANGES, event_name="onDidChangeTextDocument", timestamp=1)


@pytest.mark.parametrize(
    "line",
    [
        "not json",
        "[1, 2]",
        '{"logType": "mystery", "eventName": "x", "timestamp": 1}',
        '{"logType": "webSearch", "eventName": "x"}',
        '{"logType": "webSearch", "eventName": "x", "timestamp": 1, "payload": {"focused": true}}',
    ],
)
def test_decode_record_rejects_malformed_lines(line: str) -> None:
    with pytest.raises(RecordDecodeError):
        decode_record(line)


def test_lone_surrogates_encode_as_ascii_escapes() -> None:
    record = UserEvent(
        kind=EventKind.ADD_REQUEST,
        event_name="askQuestion",
        timestamp=3,
        content="hi \ud800 and é",
        payload=ChatExchange(message_id="m1"),
    )

    line = encode_record(record)

    assert line.isascii()
    assert "\\ud800" in line
    assert decode_record(line) == record


@pytest.mark.parametrize(
    ("record_type", "kind"),
    [
        (TextChangeEvent, EventKind.TEXT_SELECTIONS),
        (TextSelectionEvent, EventKind.TERMINAL_STATE),
        (TerminalEvent, EventKind.FILE_OPERATION),
    ],
)
def test_specialized_records_reject_foreign_kinds(record_type: type, kind: EventKind) -> None:
    with pytest.raises(ValueError, match="must use kind"):
        record_type(kind=kind, event_name="onSomething", timestamp=1)
